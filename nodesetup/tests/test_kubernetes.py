import logging

from nodesetup.config import NodeSetupConfig
from nodesetup.modules.arch import detect_arch
from nodesetup.modules.kubernetes import (
    APT_KEYRING_PATH,
    APT_SOURCES_PATH,
    KUBEADM_DROPIN_PATH,
    KUBELET_UNIT_PATH,
    apt_install_kube,
    apt_package_specs,
    install_crictl,
    install_kube,
    resolve_kubernetes_version,
)

AMD64 = detect_arch("amd64", "")


def test_version_falls_back_to_tested_version(caplog):
    with caplog.at_level(logging.WARNING):
        version = resolve_kubernetes_version(NodeSetupConfig.from_env({}))
    assert version == "1.25.5"
    assert "tested version 1.25.5" in caplog.text


def test_requested_version_is_used(caplog):
    with caplog.at_level(logging.WARNING):
        version = resolve_kubernetes_version(NodeSetupConfig.from_env({"KUBERNETES_VERSION": "1.26.3"}))
    assert version == "1.26.3"
    assert caplog.records == []


def test_apt_package_specs():
    assert apt_package_specs("1.25.5") == ["kubelet=1.25.5-00", "kubeadm=1.25.5-00", "kubectl=1.25.5-00"]


def test_apt_install_kube(host):
    apt_install_kube("1.25.5", host)

    assert host.commands == [
        ["apt", "install", "-y", "apt-transport-https", "ca-certificates", "socat", "conntrack"],
        ["apt", "update"],
        ["apt", "install", "-y", "kubelet=1.25.5-00", "kubeadm=1.25.5-00", "kubectl=1.25.5-00",
         "--allow-downgrades", "--allow-change-held-packages"],
        ["apt-mark", "hold", "kubelet", "kubeadm", "kubectl"],
    ]
    assert host.fetched == ["https://packages.cloud.google.com/apt/doc/apt-key.gpg"]
    assert host.path(APT_KEYRING_PATH).exists()
    assert host.path(APT_SOURCES_PATH).read_text() == (
        "deb [signed-by=/usr/share/keyrings/kubernetes-archive-keyring.gpg] "
        "https://apt.kubernetes.io/ kubernetes-xenial main\n"
    )


def test_tar_install_kube(host):
    install_kube(NodeSetupConfig.from_env({}), "1.25.5", AMD64, host)

    base = "https://storage.googleapis.com/kubernetes-release/release/v1.25.5/bin/linux/amd64"
    assert host.fetched[:3] == [f"{base}/kubeadm", f"{base}/kubelet", f"{base}/kubectl"]
    for binary in ("kubeadm", "kubelet", "kubectl"):
        assert host.path(f"/usr/local/bin/{binary}").stat().st_mode & 0o777 == 0o755

    assert host.path(KUBELET_UNIT_PATH).read_text() == "ExecStart=/usr/local/bin/kubelet\n"
    assert host.path(KUBEADM_DROPIN_PATH).read_text() == "ExecStart=/usr/local/bin/kubelet\n"
    assert all("/v0.4.0/" in url for url in host.fetched[3:])
    assert host.commands[0][:3] == ["apt", "install", "-y"]
    assert host.commands[-1] == ["systemctl", "enable", "--now", "kubelet"]


def test_tar_install_kube_without_apt(make_host, caplog):
    host = make_host(executables=[])
    with caplog.at_level(logging.WARNING):
        install_kube(NodeSetupConfig.from_env({"DOWNLOAD_DIR": "/opt/bin/"}), "1.25.5", AMD64, host)

    assert ["apt", "install"] not in [c[:2] for c in host.commands]
    assert "apt not found" in caplog.text
    assert host.path("/opt/bin/kubelet").exists()
    assert host.path(KUBELET_UNIT_PATH).read_text() == "ExecStart=/opt/bin/kubelet\n"


def test_crictl_skipped_without_version(host, caplog):
    with caplog.at_level(logging.WARNING):
        installed = install_crictl(NodeSetupConfig.from_env({}), AMD64, host)
    assert installed is False
    assert host.extracted == []
    assert "crictl version has not been passed" in caplog.text


def test_crictl_installed_with_version(host):
    config = NodeSetupConfig.from_env({"CRICTL_VERSION": "v1.26.0"})
    assert install_crictl(config, AMD64, host) is True
    assert host.extracted == [(
        "https://github.com/kubernetes-sigs/cri-tools/releases/download/"
        "v1.26.0/crictl-v1.26.0-linux-amd64.tar.gz",
        "/usr/local/bin",
    )]
