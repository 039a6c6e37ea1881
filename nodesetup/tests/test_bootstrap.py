import pytest

from nodesetup.config import NodeSetupConfig
from nodesetup.errors import (
    PrivilegeError,
    StepFailedError,
    UnsupportedArchitectureError,
    UnsupportedInstallMethodError,
)
from nodesetup.models import InstallMethod, JoinState
from nodesetup.modules.bootstrap import do_setup

JOIN = {
    "JOIN_TOKEN": "abcdef.0123456789abcdef",
    "JOIN_TOKEN_CACERT_HASH": "sha256:0123456789",
    "JOIN_URL": "10.0.0.1:6443",
}


def test_apt_setup_runs_steps_in_order(host):
    result = do_setup(NodeSetupConfig.from_env(JOIN), host)

    assert result.install_method == InstallMethod.APT
    assert result.architecture.tag == "amd64"
    assert result.kubernetes_version == "1.25.5"
    assert result.join_state == JoinState.JOIN_ATTEMPTED
    assert result.steps == ["environment", "prerequisites", "install", "join"]

    programs = [c[0] for c in host.commands]
    assert programs.index("modprobe") < programs.index("apt") < programs.index("kubeadm")
    assert host.commands[-1][:2] == ["kubeadm", "join"]
    assert ["apt", "install", "-y", "kubelet=1.25.5-00", "kubeadm=1.25.5-00", "kubectl=1.25.5-00",
            "--allow-downgrades", "--allow-change-held-packages"] in host.commands


def test_tar_setup(make_host):
    host = make_host(machine="arm64")
    config = NodeSetupConfig.from_env({"INSTALL_METHOD": "tar", "CRICTL_VERSION": "v1.26.0",
                                       "KUBERNETES_VERSION": "1.26.1"})
    result = do_setup(config, host)

    assert result.install_method == InstallMethod.TAR
    assert result.join_state == JoinState.NOT_JOINED
    assert host.extracted[0][0].endswith("crictl-v1.26.0-linux-arm64.tar.gz")
    assert any(url.endswith("/v1.26.1/bin/linux/arm64/kubelet") for url in host.fetched)
    assert host.commands[-1] == ["systemctl", "enable", "--now", "kubelet"]


def test_missing_join_credentials_still_succeeds(host):
    result = do_setup(NodeSetupConfig.from_env({}), host)
    assert result.join_state == JoinState.NOT_JOINED
    assert "kubeadm" not in [c[0] for c in host.commands]


@pytest.mark.parametrize("method", ["rpm", "airgap"])
def test_unsupported_method_has_no_side_effects(host, method):
    with pytest.raises(UnsupportedInstallMethodError):
        do_setup(NodeSetupConfig.from_env({"INSTALL_METHOD": method, **JOIN}), host)
    assert host.commands == []
    assert host.fetched == []
    assert host.files() == []


def test_non_root_stops_before_any_step(make_host):
    host = make_host(root_user=False)
    with pytest.raises(PrivilegeError):
        do_setup(NodeSetupConfig.from_env(JOIN), host)
    assert host.commands == []
    assert host.files() == []


def test_unsupported_architecture_stops_before_any_step(make_host):
    host = make_host(machine="s390x")
    with pytest.raises(UnsupportedArchitectureError):
        do_setup(NodeSetupConfig.from_env({}), host)
    assert host.commands == []
    assert host.files() == []


def test_failing_command_aborts_with_step_name(make_host):
    host = make_host(fail_on=["apt", "install", "-y", "containerd"])
    with pytest.raises(StepFailedError) as exc:
        do_setup(NodeSetupConfig.from_env(JOIN), host)
    assert exc.value.step == "runtime"
    assert "kubeadm" not in [c[0] for c in host.commands]
