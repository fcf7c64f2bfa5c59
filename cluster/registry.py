"""기본 에셋/명령/서버 등록 테이블과 역할 필터링 조회."""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from . import constants as c
from .context import ClusterContext
from .models import Role, sorted_labels

LOGGER = logging.getLogger(__name__)

CONTROLLER = Role.CONTROLLER
WORKER = Role.WORKER
BOOTSTRAPPER = Role.BOOTSTRAPPER
NONE: tuple[Role, ...] = ()


@dataclass(slots=True, frozen=True)
class RegistryEntry:
    """진단용 조회 결과 한 줄."""

    name: str
    labels: tuple[str, ...]
    detail: str


def generate(context: ClusterContext, deployment_directory: str) -> None:
    """설정 문서를 처음 만들 때 의존 순서대로 모든 테이블을 등록한다."""
    context.config.deployment_directory = deployment_directory
    register_asset_directories(context)
    register_asset_files(context)
    register_commands(context)
    register_servers(context)
    LOGGER.info(
        "Generated %d directories, %d files, %d commands, %d servers",
        len(context.config.directories),
        len(context.config.files),
        len(context.config.commands),
        len(context.config.servers),
    )


def register_asset_directories(context: ClusterContext) -> None:
    def sub(parent: str, *parts: str) -> str:
        return posixpath.join(context.relative_directory(parent), *parts)

    add = context.register_directory

    # Config
    add(c.CONFIG_DIRECTORY, NONE, posixpath.join(c.CONFIG_SUBDIRECTORY, c.TOOL_SUBDIRECTORY))
    add(c.CERTIFICATES_DIRECTORY, NONE, sub(c.CONFIG_DIRECTORY, c.CERTIFICATES_SUBDIRECTORY))
    add(c.CNI_CONFIG_DIRECTORY, NONE, sub(c.CONFIG_DIRECTORY, c.CNI_SUBDIRECTORY))
    add(c.CRI_CONFIG_DIRECTORY, NONE, sub(c.CONFIG_DIRECTORY, c.CRI_SUBDIRECTORY))

    # K8S config
    add(c.K8S_CONFIG_DIRECTORY, NONE, sub(c.CONFIG_DIRECTORY, c.K8S_SUBDIRECTORY))
    add(c.K8S_KUBE_CONFIG_DIRECTORY, NONE, sub(c.K8S_CONFIG_DIRECTORY, c.KUBECONFIG_SUBDIRECTORY))
    add(c.K8S_SECURITY_CONFIG_DIRECTORY, NONE, sub(c.K8S_CONFIG_DIRECTORY, c.SECURITY_SUBDIRECTORY))
    add(c.K8S_SETUP_CONFIG_DIRECTORY, NONE, sub(c.K8S_CONFIG_DIRECTORY, c.SETUP_SUBDIRECTORY))
    add(c.K8S_MANIFESTS_DIRECTORY, (WORKER,), sub(c.K8S_CONFIG_DIRECTORY, c.MANIFESTS_SUBDIRECTORY))

    # Binaries
    add(c.BINARIES_DIRECTORY, NONE, posixpath.join(c.OPTIONAL_SUBDIRECTORY, c.TOOL_SUBDIRECTORY, c.BINARY_SUBDIRECTORY))
    add(c.K8S_BINARIES_DIRECTORY, NONE, sub(c.BINARIES_DIRECTORY, c.K8S_SUBDIRECTORY))
    add(c.ETCD_BINARIES_DIRECTORY, NONE, sub(c.BINARIES_DIRECTORY, c.ETCD_SUBDIRECTORY))
    add(c.CRI_BINARIES_DIRECTORY, NONE, sub(c.BINARIES_DIRECTORY, c.CRI_SUBDIRECTORY))
    add(c.CNI_BINARIES_DIRECTORY, NONE, sub(c.BINARIES_DIRECTORY, c.CNI_SUBDIRECTORY))
    add(c.GOBETWEEN_BINARIES_DIRECTORY, NONE, sub(c.BINARIES_DIRECTORY, c.LOAD_BALANCER_SUBDIRECTORY))

    # Misc
    add(c.GOBETWEEN_CONFIG_DIRECTORY, NONE, sub(c.CONFIG_DIRECTORY, c.LOAD_BALANCER_SUBDIRECTORY))
    add(
        c.DYNAMIC_DATA_DIRECTORY,
        NONE,
        posixpath.join(c.VARIABLE_SUBDIRECTORY, c.LIBRARY_SUBDIRECTORY, c.TOOL_SUBDIRECTORY),
    )
    add(c.ETCD_DATA_DIRECTORY, NONE, sub(c.DYNAMIC_DATA_DIRECTORY, c.ETCD_SUBDIRECTORY))
    add(c.CONTAINERD_DATA_DIRECTORY, NONE, sub(c.DYNAMIC_DATA_DIRECTORY, c.CONTAINERD_SUBDIRECTORY))
    add(c.KUBELET_DATA_DIRECTORY, NONE, sub(c.DYNAMIC_DATA_DIRECTORY, c.KUBELET_SUBDIRECTORY))
    add(
        c.LOGGING_DIRECTORY,
        NONE,
        posixpath.join(c.VARIABLE_SUBDIRECTORY, c.LOGGING_SUBDIRECTORY, c.TOOL_SUBDIRECTORY),
    )
    add(c.SERVICE_DIRECTORY, NONE, posixpath.join(c.CONFIG_SUBDIRECTORY, c.SYSTEMD_SUBDIRECTORY, c.SYSTEM_SUBDIRECTORY))
    add(
        c.CONTAINERD_STATE_DIRECTORY,
        NONE,
        posixpath.join(c.VARIABLE_SUBDIRECTORY, c.RUN_SUBDIRECTORY, c.TOOL_SUBDIRECTORY, c.CONTAINERD_SUBDIRECTORY),
    )
    add(c.PROFILE_DIRECTORY, NONE, posixpath.join(c.CONFIG_SUBDIRECTORY, c.PROFILE_D_SUBDIRECTORY))
    add(c.HELM_DATA_DIRECTORY, NONE, sub(c.DYNAMIC_DATA_DIRECTORY, c.HELM_SUBDIRECTORY))
    add(c.TEMPORARY_DIRECTORY, NONE, c.TEMPORARY_SUBDIRECTORY)


def register_asset_files(context: ClusterContext) -> None:
    add = context.register_file
    both = (CONTROLLER, WORKER)

    # Config
    add(c.CONFIG_FILENAME, both, c.CONFIG_DIRECTORY)

    # Binaries
    add(c.TOOL_BINARY, both, c.BINARIES_DIRECTORY)

    # CNI binaries
    for binary in (c.BRIDGE_BINARY, c.FLANNEL_BINARY, c.LOOPBACK_BINARY, c.HOST_LOCAL_BINARY):
        add(binary, (WORKER,), c.CNI_BINARIES_DIRECTORY)

    # containerd binaries
    for binary in (c.CONTAINERD_BINARY, c.CONTAINERD_SHIM_BINARY, c.CTR_BINARY, c.RUNC_BINARY, c.CRICTL_BINARY):
        add(binary, (WORKER,), c.CRI_BINARIES_DIRECTORY)

    # etcd binaries
    add(c.ETCD_BINARY, (CONTROLLER,), c.ETCD_BINARIES_DIRECTORY)
    add(c.ETCDCTL_BINARY, (CONTROLLER,), c.ETCD_BINARIES_DIRECTORY)
    add(c.FLANNELD_BINARY, both, c.ETCD_BINARIES_DIRECTORY)

    # K8S binaries
    add(c.KUBECTL_BINARY, (CONTROLLER,), c.K8S_BINARIES_DIRECTORY)
    add(c.KUBE_APISERVER_BINARY, (CONTROLLER,), c.K8S_BINARIES_DIRECTORY)
    add(c.KUBE_CONTROLLER_MANAGER_BINARY, (CONTROLLER,), c.K8S_BINARIES_DIRECTORY)
    add(c.KUBELET_BINARY, (WORKER,), c.K8S_BINARIES_DIRECTORY)
    add(c.KUBE_PROXY_BINARY, (WORKER,), c.K8S_BINARIES_DIRECTORY)
    add(c.KUBE_SCHEDULER_BINARY, (CONTROLLER,), c.K8S_BINARIES_DIRECTORY)
    add(c.HELM_BINARY, NONE, c.K8S_BINARIES_DIRECTORY)
    add(c.GOBETWEEN_BINARY, (CONTROLLER,), c.GOBETWEEN_BINARIES_DIRECTORY)

    # Certificates
    certificates: Mapping[str, tuple[Role, ...]] = {
        c.CA_PEM: both,
        c.CA_KEY_PEM: (CONTROLLER,),
        c.VIRTUAL_IP_PEM: both,
        c.VIRTUAL_IP_KEY_PEM: both,
        c.FLANNELD_PEM: both,
        c.FLANNELD_KEY_PEM: both,
        c.KUBERNETES_PEM: (CONTROLLER,),
        c.KUBERNETES_KEY_PEM: (CONTROLLER,),
        c.SERVICE_ACCOUNT_PEM: (CONTROLLER,),
        c.SERVICE_ACCOUNT_KEY_PEM: (CONTROLLER,),
        c.ADMIN_PEM: NONE,
        c.ADMIN_KEY_PEM: NONE,
        c.CONTROLLER_MANAGER_PEM: NONE,
        c.CONTROLLER_MANAGER_KEY_PEM: NONE,
        c.SCHEDULER_PEM: NONE,
        c.SCHEDULER_KEY_PEM: NONE,
        c.PROXY_PEM: NONE,
        c.PROXY_KEY_PEM: NONE,
        c.KUBELET_PEM: (WORKER,),
        c.KUBELET_KEY_PEM: (WORKER,),
    }
    for name, roles in certificates.items():
        add(name, roles, c.CERTIFICATES_DIRECTORY)

    # Kubeconfig
    add(c.ADMIN_KUBECONFIG, NONE, c.K8S_KUBE_CONFIG_DIRECTORY)
    add(c.CONTROLLER_MANAGER_KUBECONFIG, (CONTROLLER,), c.K8S_KUBE_CONFIG_DIRECTORY)
    add(c.SCHEDULER_KUBECONFIG, (CONTROLLER,), c.K8S_KUBE_CONFIG_DIRECTORY)
    add(c.PROXY_KUBECONFIG, (WORKER,), c.K8S_KUBE_CONFIG_DIRECTORY)
    add(c.KUBELET_KUBECONFIG, (WORKER,), c.K8S_KUBE_CONFIG_DIRECTORY)

    add(c.ENCRYPTION_CONFIG, (CONTROLLER,), c.K8S_SECURITY_CONFIG_DIRECTORY)

    # CNI / CRI
    add(c.NET_CONFIG, (WORKER,), c.CNI_CONFIG_DIRECTORY)
    add(c.CNI_CONFIG, (WORKER,), c.CNI_CONFIG_DIRECTORY)
    add(c.CONTAINERD_CONFIG, (WORKER,), c.CRI_CONFIG_DIRECTORY)
    add(c.CONTAINERD_SOCK, NONE, c.CONTAINERD_STATE_DIRECTORY)

    add(c.SERVICE_CONFIG, both, c.SERVICE_DIRECTORY)

    # K8S setup
    add(c.K8S_KUBELET_SETUP, NONE, c.K8S_SETUP_CONFIG_DIRECTORY)
    add(c.K8S_ADMIN_USER_SETUP, NONE, c.K8S_SETUP_CONFIG_DIRECTORY)
    add(c.K8S_HELM_USER_SETUP, NONE, c.K8S_SETUP_CONFIG_DIRECTORY)

    add(c.K8S_KUBE_SCHEDULER_CONFIG, (CONTROLLER,), c.K8S_CONFIG_DIRECTORY)
    add(c.K8S_KUBELET_CONFIG, (WORKER,), c.K8S_CONFIG_DIRECTORY)

    add(c.PROFILE_SCRIPT, both, c.PROFILE_DIRECTORY)
    add(c.GOBETWEEN_CONFIG, (CONTROLLER,), c.GOBETWEEN_CONFIG_DIRECTORY)


def register_commands(context: ClusterContext) -> None:
    # 부트스트래퍼 명령은 로컬(빌드) 경로에서 실행된다.
    local = context.full_local_file
    kubectl = f"{local(c.KUBECTL_BINARY)} --kubeconfig {local(c.ADMIN_KUBECONFIG)}"
    helm = (
        f"KUBECONFIG={local(c.ADMIN_KUBECONFIG)} "
        f"HELM_HOME={context.full_local_directory(c.HELM_DATA_DIRECTORY)} {local(c.HELM_BINARY)}"
    )
    etcdctl = (
        f"{local(c.ETCDCTL_BINARY)} --ca-file={local(c.CA_PEM)} --cert-file={local(c.KUBERNETES_PEM)} "
        f"--key-file={local(c.KUBERNETES_KEY_PEM)} --endpoints={{{{ etcd_servers() }}}}"
    )

    add = context.register_command
    add("swapoff", (WORKER,), "swapoff -a")
    add("load-overlay", (WORKER,), "modprobe overlay")
    add("load-btrfs", (WORKER,), "modprobe btrfs")
    add("load-br_netfilter", (CONTROLLER, WORKER), "modprobe br_netfilter")
    add(
        "enable-br_netfilter",
        (CONTROLLER, WORKER),
        "echo '1' > /proc/sys/net/bridge/bridge-nf-call-iptables",
    )
    add(
        "flanneld-configuration",
        (BOOTSTRAPPER,),
        f"{etcdctl} set /coreos.com/network/config '{{ \"Network\": \"{{{{ config.cluster_cidr }}}}\" }}'",
    )
    add("k8s-kubelet-setup", (BOOTSTRAPPER,), f"{kubectl} apply -f {local(c.K8S_KUBELET_SETUP)}")
    add("k8s-admin-user-setup", (BOOTSTRAPPER,), f"{kubectl} apply -f {local(c.K8S_ADMIN_USER_SETUP)}")
    add(
        "k8s-kube-dns",
        (BOOTSTRAPPER,),
        f"{kubectl} apply -f https://storage.googleapis.com/kubernetes-the-hard-way/kube-dns.yaml",
    )
    add("k8s-helm-user-setup", (BOOTSTRAPPER,), f"{kubectl} apply -f {local(c.K8S_HELM_USER_SETUP)}")
    add("helm-init", (BOOTSTRAPPER,), f"{helm} init --service-account {c.HELM_SERVICE_ACCOUNT} --upgrade")
    add("helm-repo-update", (BOOTSTRAPPER,), f"{helm} repo update")
    add(
        "helm-kubernetes-dashboard",
        (BOOTSTRAPPER,),
        f"{kubectl} get svc kubernetes-dashboard -n kube-system || {helm} install stable/kubernetes-dashboard "
        "--name kubernetes-dashboard --set=service.type=NodePort,service.nodePort=32443 --namespace kube-system",
    )


def register_servers(context: ClusterContext) -> None:
    f = context.template_asset_file
    d = context.template_asset_directory
    add = context.register_server

    add(
        "etcd",
        (CONTROLLER,),
        f(c.ETCD_BINARY),
        {
            "name": "{{ name }}",
            "cert-file": f(c.KUBERNETES_PEM),
            "key-file": f(c.KUBERNETES_KEY_PEM),
            "peer-cert-file": f(c.KUBERNETES_PEM),
            "peer-key-file": f(c.KUBERNETES_KEY_PEM),
            "trusted-ca-file": f(c.CA_PEM),
            "peer-trusted-ca-file": f(c.CA_PEM),
            "peer-client-cert-auth": "",
            "client-cert-auth": "",
            "initial-advertise-peer-urls": f"https://{{{{ node.ip }}}}:{c.ETCD_PEER_PORT}",
            "listen-peer-urls": f"https://{{{{ node.ip }}}}:{c.ETCD_PEER_PORT}",
            "listen-client-urls": f"https://{{{{ node.ip }}}}:{c.ETCD_CLIENT_PORT}",
            "advertise-client-urls": f"https://{{{{ node.ip }}}}:{c.ETCD_CLIENT_PORT}",
            "initial-cluster-token": "etcd-cluster",
            "initial-cluster": "{{ etcd_cluster() }}",
            "initial-cluster-state": "new",
            "data-dir": d(c.ETCD_DATA_DIRECTORY),
        },
    )

    add(
        "flanneld",
        (CONTROLLER, WORKER),
        f(c.FLANNELD_BINARY),
        {
            "etcd-endpoints": "{{ etcd_servers() }}",
            "etcd-cafile": f(c.CA_PEM),
            "etcd-certfile": f(c.FLANNELD_PEM),
            "etcd-keyfile": f(c.FLANNELD_KEY_PEM),
            "iface-regex": "{{ node.ip }}",
            "v": "0",
        },
    )

    add("containerd", (WORKER,), f(c.CONTAINERD_BINARY), {"config": f(c.CONTAINERD_CONFIG)})

    add("gobetween", (CONTROLLER,), f(c.GOBETWEEN_BINARY), {"config": f(c.GOBETWEEN_CONFIG)})

    add(
        "kube-apiserver",
        (CONTROLLER,),
        f(c.KUBE_APISERVER_BINARY),
        {
            "allow-privileged": "true",
            "advertise-address": "{{ node.ip }}",
            "apiserver-count": "{{ controllers_count() }}",
            "audit-log-maxage": "30",
            "audit-log-maxbackup": "3",
            "audit-log-maxsize": "100",
            "audit-log-path": posixpath.join(d(c.LOGGING_DIRECTORY), c.AUDIT_LOG),
            "authorization-mode": "Node,RBAC",
            "bind-address": "0.0.0.0",
            "secure-port": "{{ config.apiserver_port }}",
            "client-ca-file": f(c.CA_PEM),
            "enable-admission-plugins": (
                "Initializers,NamespaceLifecycle,NodeRestriction,LimitRanger,"
                "ServiceAccount,DefaultStorageClass,ResourceQuota"
            ),
            "enable-swagger-ui": "true",
            "etcd-cafile": f(c.CA_PEM),
            "etcd-certfile": f(c.KUBERNETES_PEM),
            "etcd-keyfile": f(c.KUBERNETES_KEY_PEM),
            "etcd-servers": "{{ etcd_servers() }}",
            "event-ttl": "1h",
            "experimental-encryption-provider-config": f(c.ENCRYPTION_CONFIG),
            "kubelet-certificate-authority": f(c.CA_PEM),
            "kubelet-client-certificate": f(c.KUBERNETES_PEM),
            "kubelet-client-key": f(c.KUBERNETES_KEY_PEM),
            "kubelet-https": "true",
            "runtime-config": "api/all",
            "service-account-key-file": f(c.SERVICE_ACCOUNT_PEM),
            "service-cluster-ip-range": "{{ config.cluster_ip_range }}",
            "service-node-port-range": "30000-32767",
            "tls-cert-file": f(c.KUBERNETES_PEM),
            "tls-private-key-file": f(c.KUBERNETES_KEY_PEM),
            "v": "0",
        },
    )

    add(
        "kube-controller-manager",
        (CONTROLLER,),
        f(c.KUBE_CONTROLLER_MANAGER_BINARY),
        {
            "address": "0.0.0.0",
            "cluster-cidr": "{{ config.cluster_cidr }}",
            "cluster-name": "kubernetes",
            "cluster-signing-cert-file": f(c.CA_PEM),
            "cluster-signing-key-file": f(c.CA_KEY_PEM),
            "kubeconfig": f(c.CONTROLLER_MANAGER_KUBECONFIG),
            "leader-elect": "true",
            "root-ca-file": f(c.CA_PEM),
            "service-account-private-key-file": f(c.SERVICE_ACCOUNT_KEY_PEM),
            "service-cluster-ip-range": "{{ config.cluster_ip_range }}",
            "use-service-account-credentials": "true",
            "v": "0",
        },
    )

    add(
        "kube-scheduler",
        (CONTROLLER,),
        f(c.KUBE_SCHEDULER_BINARY),
        {"config": f(c.K8S_KUBE_SCHEDULER_CONFIG), "v": "0"},
    )

    add(
        "kube-proxy",
        (WORKER,),
        f(c.KUBE_PROXY_BINARY),
        {
            "cluster-cidr": "{{ config.cluster_cidr }}",
            "kubeconfig": f(c.PROXY_KUBECONFIG),
            "proxy-mode": "iptables",
            "v": "0",
        },
    )

    add(
        "kubelet",
        (WORKER,),
        f(c.KUBELET_BINARY),
        {
            "config": f(c.K8S_KUBELET_CONFIG),
            "container-runtime": "remote",
            "container-runtime-endpoint": "unix://" + f(c.CONTAINERD_SOCK),
            "image-pull-progress-deadline": "2m",
            "kubeconfig": f(c.KUBELET_KUBECONFIG),
            "network-plugin": "cni",
            "register-node": "true",
            "allow-privileged": "true",
            "resolv-conf": "{{ config.resolv_conf }}",
            "root-dir": d(c.KUBELET_DATA_DIRECTORY),
            "v": "0",
        },
    )


# Introspection -------------------------------------------------------------


def _selected(labels: frozenset[Role], roles: frozenset[Role] | None) -> bool:
    return roles is None or not labels.isdisjoint(roles)


def _roles_filter(roles: Iterable[Role] | None) -> frozenset[Role] | None:
    return None if roles is None else frozenset(roles)


def list_directories(context: ClusterContext, roles: Iterable[Role] | None = None) -> list[RegistryEntry]:
    wanted = _roles_filter(roles)
    return [
        RegistryEntry(name, tuple(sorted_labels(entry.labels)), entry.directory)
        for name, entry in context.config.directories.items()
        if _selected(entry.labels, wanted)
    ]


def list_files(context: ClusterContext, roles: Iterable[Role] | None = None) -> list[RegistryEntry]:
    wanted = _roles_filter(roles)
    return [
        RegistryEntry(name, tuple(sorted_labels(entry.labels)), entry.directory)
        for name, entry in context.config.files.items()
        if _selected(entry.labels, wanted)
    ]


def list_commands(context: ClusterContext, roles: Iterable[Role] | None = None) -> list[RegistryEntry]:
    wanted = _roles_filter(roles)
    return [
        RegistryEntry(name, tuple(sorted_labels(entry.labels)), entry.command)
        for name, entry in context.config.commands.items()
        if _selected(entry.labels, wanted)
    ]


def list_servers(context: ClusterContext, roles: Iterable[Role] | None = None) -> list[RegistryEntry]:
    wanted = _roles_filter(roles)
    return [
        RegistryEntry(name, tuple(sorted_labels(entry.labels)), entry.command)
        for name, entry in context.config.servers.items()
        if _selected(entry.labels, wanted)
    ]


def dump_registry(context: ClusterContext, roles: Iterable[Role] | None = None) -> None:
    wanted = _roles_filter(roles)
    sections = (
        ("directory", list_directories),
        ("file", list_files),
        ("command", list_commands),
        ("server", list_servers),
    )
    for kind, lister in sections:
        for entry in lister(context, wanted):
            LOGGER.info("%s name=%s labels=%s detail=%s", kind, entry.name, ",".join(entry.labels), entry.detail)
