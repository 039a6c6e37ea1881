"""
Node setup steps.
"""
from .arch import detect_arch
from .bootstrap import do_setup, install
from .environment import resolve_environment
from .join import join_controlplane
from .prerequisites import set_prerequisites

__all__ = [
    'detect_arch',
    'do_setup',
    'install',
    'resolve_environment',
    'join_controlplane',
    'set_prerequisites',
]
