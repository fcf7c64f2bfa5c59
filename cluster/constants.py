"""클러스터 기본값과 에셋 논리 이름 상수."""

from __future__ import annotations

from typing import Final

# Config defaults
CONFIG_VERSION: Final = "1.0.0"
LOAD_BALANCER_PORT: Final = 16443
API_SERVER_PORT: Final = 6443
CLUSTER_IP_RANGE: Final = "10.32.0.0/24"
CLUSTER_DNS_IP: Final = "10.32.0.10"
CLUSTER_CIDR: Final = "10.200.0.0/16"
RESOLV_CONF: Final = "/etc/resolv.conf"
DEFAULT_DEPLOYMENT_DIRECTORY: Final = "/"
ETCD_CLIENT_PORT: Final = 2379
ETCD_PEER_PORT: Final = 2380
HELM_SERVICE_ACCOUNT: Final = "tiller"

# Subdirectories
TOOL_SUBDIRECTORY: Final = "nodeforge"
CONFIG_SUBDIRECTORY: Final = "etc"
CERTIFICATES_SUBDIRECTORY: Final = "ssl"
CNI_SUBDIRECTORY: Final = "cni"
CRI_SUBDIRECTORY: Final = "cri"
K8S_SUBDIRECTORY: Final = "k8s"
KUBECONFIG_SUBDIRECTORY: Final = "kubeconfig"
SECURITY_SUBDIRECTORY: Final = "security"
SETUP_SUBDIRECTORY: Final = "setup"
MANIFESTS_SUBDIRECTORY: Final = "manifests"
OPTIONAL_SUBDIRECTORY: Final = "opt"
BINARY_SUBDIRECTORY: Final = "bin"
ETCD_SUBDIRECTORY: Final = "etcd"
LOAD_BALANCER_SUBDIRECTORY: Final = "lb"
VARIABLE_SUBDIRECTORY: Final = "var"
LIBRARY_SUBDIRECTORY: Final = "lib"
CONTAINERD_SUBDIRECTORY: Final = "containerd"
KUBELET_SUBDIRECTORY: Final = "kubelet"
LOGGING_SUBDIRECTORY: Final = "log"
SYSTEMD_SUBDIRECTORY: Final = "systemd"
SYSTEM_SUBDIRECTORY: Final = "system"
RUN_SUBDIRECTORY: Final = "run"
PROFILE_D_SUBDIRECTORY: Final = "profile.d"
HELM_SUBDIRECTORY: Final = "helm"
TEMPORARY_SUBDIRECTORY: Final = "tmp"

# Asset directories (logical names)
CONFIG_DIRECTORY: Final = "config"
CERTIFICATES_DIRECTORY: Final = "certificates"
CNI_CONFIG_DIRECTORY: Final = "cni-config"
CRI_CONFIG_DIRECTORY: Final = "cri-config"
K8S_CONFIG_DIRECTORY: Final = "k8s-config"
K8S_KUBE_CONFIG_DIRECTORY: Final = "k8s-kube-config"
K8S_SECURITY_CONFIG_DIRECTORY: Final = "k8s-security-config"
K8S_SETUP_CONFIG_DIRECTORY: Final = "k8s-setup-config"
K8S_MANIFESTS_DIRECTORY: Final = "k8s-manifests"
BINARIES_DIRECTORY: Final = "binaries"
K8S_BINARIES_DIRECTORY: Final = "k8s-binaries"
ETCD_BINARIES_DIRECTORY: Final = "etcd-binaries"
CRI_BINARIES_DIRECTORY: Final = "cri-binaries"
CNI_BINARIES_DIRECTORY: Final = "cni-binaries"
GOBETWEEN_BINARIES_DIRECTORY: Final = "gobetween-binaries"
GOBETWEEN_CONFIG_DIRECTORY: Final = "gobetween-config"
DYNAMIC_DATA_DIRECTORY: Final = "dynamic-data"
ETCD_DATA_DIRECTORY: Final = "etcd-data"
CONTAINERD_DATA_DIRECTORY: Final = "containerd-data"
KUBELET_DATA_DIRECTORY: Final = "kubelet-data"
LOGGING_DIRECTORY: Final = "logging"
SERVICE_DIRECTORY: Final = "service"
CONTAINERD_STATE_DIRECTORY: Final = "containerd-state"
PROFILE_DIRECTORY: Final = "profile"
HELM_DATA_DIRECTORY: Final = "helm-data"
TEMPORARY_DIRECTORY: Final = "temporary"

# Asset files (logical name == file name)
CONFIG_FILENAME: Final = "config.yaml"
TOOL_BINARY: Final = "nodeforge"

BRIDGE_BINARY: Final = "bridge"
FLANNEL_BINARY: Final = "flannel"
LOOPBACK_BINARY: Final = "loopback"
HOST_LOCAL_BINARY: Final = "host-local"

CONTAINERD_BINARY: Final = "containerd"
CONTAINERD_SHIM_BINARY: Final = "containerd-shim"
CTR_BINARY: Final = "ctr"
RUNC_BINARY: Final = "runc"
CRICTL_BINARY: Final = "crictl"

ETCD_BINARY: Final = "etcd"
ETCDCTL_BINARY: Final = "etcdctl"
FLANNELD_BINARY: Final = "flanneld"

KUBECTL_BINARY: Final = "kubectl"
KUBE_APISERVER_BINARY: Final = "kube-apiserver"
KUBE_CONTROLLER_MANAGER_BINARY: Final = "kube-controller-manager"
KUBELET_BINARY: Final = "kubelet"
KUBE_PROXY_BINARY: Final = "kube-proxy"
KUBE_SCHEDULER_BINARY: Final = "kube-scheduler"
HELM_BINARY: Final = "helm"
GOBETWEEN_BINARY: Final = "gobetween"

CA_PEM: Final = "ca.pem"
CA_KEY_PEM: Final = "ca-key.pem"
VIRTUAL_IP_PEM: Final = "virtual-ip.pem"
VIRTUAL_IP_KEY_PEM: Final = "virtual-ip-key.pem"
FLANNELD_PEM: Final = "flanneld.pem"
FLANNELD_KEY_PEM: Final = "flanneld-key.pem"
KUBERNETES_PEM: Final = "kubernetes.pem"
KUBERNETES_KEY_PEM: Final = "kubernetes-key.pem"
SERVICE_ACCOUNT_PEM: Final = "service-account.pem"
SERVICE_ACCOUNT_KEY_PEM: Final = "service-account-key.pem"
ADMIN_PEM: Final = "admin.pem"
ADMIN_KEY_PEM: Final = "admin-key.pem"
CONTROLLER_MANAGER_PEM: Final = "kube-controller-manager.pem"
CONTROLLER_MANAGER_KEY_PEM: Final = "kube-controller-manager-key.pem"
SCHEDULER_PEM: Final = "kube-scheduler.pem"
SCHEDULER_KEY_PEM: Final = "kube-scheduler-key.pem"
PROXY_PEM: Final = "kube-proxy.pem"
PROXY_KEY_PEM: Final = "kube-proxy-key.pem"
# 노드별 파일: 논리 이름 자체가 템플릿이다.
KUBELET_PEM: Final = "kubelet-{{ name }}.pem"
KUBELET_KEY_PEM: Final = "kubelet-{{ name }}-key.pem"

ADMIN_KUBECONFIG: Final = "admin.kubeconfig"
CONTROLLER_MANAGER_KUBECONFIG: Final = "kube-controller-manager.kubeconfig"
SCHEDULER_KUBECONFIG: Final = "kube-scheduler.kubeconfig"
PROXY_KUBECONFIG: Final = "kube-proxy.kubeconfig"
KUBELET_KUBECONFIG: Final = "kubelet-{{ name }}.kubeconfig"

ENCRYPTION_CONFIG: Final = "encryption-config.yaml"
NET_CONFIG: Final = "10-flannel.conflist"
CNI_CONFIG: Final = "99-loopback.conf"
CONTAINERD_CONFIG: Final = "config.toml"
CONTAINERD_SOCK: Final = "containerd.sock"
SERVICE_CONFIG: Final = "nodeforge.service"
K8S_KUBELET_SETUP: Final = "kubelet-setup.yaml"
K8S_ADMIN_USER_SETUP: Final = "admin-user-setup.yaml"
K8S_HELM_USER_SETUP: Final = "helm-user-setup.yaml"
K8S_KUBE_SCHEDULER_CONFIG: Final = "kube-scheduler-config.yaml"
K8S_KUBELET_CONFIG: Final = "kubelet-config-{{ name }}.yaml"
PROFILE_SCRIPT: Final = "nodeforge.sh"
GOBETWEEN_CONFIG: Final = "gobetween.toml"
AUDIT_LOG: Final = "audit.log"
