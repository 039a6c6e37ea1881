"""Provision a Linux host and join it to a Kubernetes cluster with kubeadm."""

__version__ = "0.1.0"
