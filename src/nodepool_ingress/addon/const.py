"""
Fixed names for the ingress-nginx addon resource set.
"""

NAMESPACE = "ingress-nginx"
APP_NAME = "ingress-nginx"

# Label that tags every pool-scoped object with its node pool.
POOL_LABEL_KEY = "nodepool_name"

# Object the cluster-shared resources are garbage collected with.
MANAGER_KIND = "ClusterRole"
MANAGER_NAME = "yurt-app-manager-role"

DEFAULT_CONTROLLER_IMAGE = "registry.k8s.io/ingress-nginx/controller:v1.9.4"
DEFAULT_WEBHOOK_CERTGEN_IMAGE = "registry.k8s.io/ingress-nginx/kube-webhook-certgen:v20231011-8b53cabe0"

WEBHOOK_REPLICAS = 1

# Template identifiers, cluster-shared
CONTROLLER_NAMESPACE = "ingress-nginx-namespace"
CONTROLLER_CLUSTER_ROLE = "ingress-nginx-clusterrole"
ADMISSION_WEBHOOK_CLUSTER_ROLE = "ingress-nginx-admission-clusterrole"
CONTROLLER_CLUSTER_ROLE_BINDING = "ingress-nginx-clusterrolebinding"
ADMISSION_WEBHOOK_CLUSTER_ROLE_BINDING = "ingress-nginx-admission-clusterrolebinding"
CONTROLLER_ROLE = "ingress-nginx-role"
ADMISSION_WEBHOOK_ROLE = "ingress-nginx-admission-role"
CONTROLLER_ROLE_BINDING = "ingress-nginx-rolebinding"
ADMISSION_WEBHOOK_ROLE_BINDING = "ingress-nginx-admission-rolebinding"
CONTROLLER_SERVICE_ACCOUNT = "ingress-nginx-serviceaccount"
ADMISSION_WEBHOOK_SERVICE_ACCOUNT = "ingress-nginx-admission-serviceaccount"
CONTROLLER_CONFIG_MAP = "ingress-nginx-configmap"

# Template identifiers, pool-scoped
CONTROLLER_DEPLOYMENT = "ingress-nginx-controller-deployment"
ADMISSION_WEBHOOK_DEPLOYMENT = "ingress-nginx-admission-deployment"
CONTROLLER_SERVICE = "ingress-nginx-controller-service"
ADMISSION_WEBHOOK_SERVICE = "ingress-nginx-admission-service"
VALIDATING_WEBHOOK_CONFIGURATION = "ingress-nginx-validatingwebhookconfiguration"
ADMISSION_WEBHOOK_JOB = "ingress-nginx-admission-create-job"
ADMISSION_WEBHOOK_JOB_PATCH = "ingress-nginx-admission-patch-job"

# Object names
CONTROLLER_SERVICE_ACCOUNT_NAME = "ingress-nginx"
ADMISSION_SERVICE_ACCOUNT_NAME = "ingress-nginx-admission"
CONTROLLER_CONFIG_MAP_NAME = "ingress-nginx-controller"
