import logging
import os

import yaml

from .addon import const, orchestrator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "/etc/nodepool-ingress/config.yaml"
DEFAULT_NAMESPACE = const.NAMESPACE
DEFAULT_MANAGER_KIND = const.MANAGER_KIND
DEFAULT_MANAGER_NAME = const.MANAGER_NAME
DEFAULT_MANAGER_NAMESPACE = None
DEFAULT_CONTROLLER_IMAGE = const.DEFAULT_CONTROLLER_IMAGE
DEFAULT_WEBHOOK_CERTGEN_IMAGE = const.DEFAULT_WEBHOOK_CERTGEN_IMAGE
DEFAULT_SETTLE_DELAY = orchestrator.DEFAULT_SETTLE_DELAY
DEFAULT_RECREATE_TIMEOUT = orchestrator.DEFAULT_RECREATE_TIMEOUT
DEFAULT_POLL_INTERVAL = orchestrator.DEFAULT_POLL_INTERVAL


class AddonConfig:
    def __init__(self, config_path=None):
        self.config_path = config_path or os.environ.get(
            "NODEPOOL_INGRESS_CONFIG_PATH", DEFAULT_CONFIG_PATH
        )
        self._config = self._load_config()

        self.namespace = self._get_value(
            "NODEPOOL_INGRESS_NAMESPACE", "namespace", DEFAULT_NAMESPACE
        )
        self.manager_kind = self._get_value(
            "NODEPOOL_INGRESS_MANAGER_KIND", "managerKind", DEFAULT_MANAGER_KIND
        )
        self.manager_name = self._get_value(
            "NODEPOOL_INGRESS_MANAGER_NAME", "managerName", DEFAULT_MANAGER_NAME
        )
        # Only needed when the manager kind is namespaced.
        self.manager_namespace = (
            self._get_value(
                "NODEPOOL_INGRESS_MANAGER_NAMESPACE",
                "managerNamespace",
                DEFAULT_MANAGER_NAMESPACE,
            )
            or None
        )
        self.controller_image = self._get_value(
            "NODEPOOL_INGRESS_CONTROLLER_IMAGE",
            "controllerImage",
            DEFAULT_CONTROLLER_IMAGE,
        )
        self.webhook_certgen_image = self._get_value(
            "NODEPOOL_INGRESS_WEBHOOK_CERTGEN_IMAGE",
            "webhookCertgenImage",
            DEFAULT_WEBHOOK_CERTGEN_IMAGE,
        )
        self.settle_delay = self._get_value(
            "NODEPOOL_INGRESS_SETTLE_DELAY",
            "settleDelay",
            DEFAULT_SETTLE_DELAY,
            caster=float,
        )
        self.recreate_timeout = self._get_value(
            "NODEPOOL_INGRESS_RECREATE_TIMEOUT",
            "recreateTimeout",
            DEFAULT_RECREATE_TIMEOUT,
            caster=float,
        )
        self.poll_interval = self._get_value(
            "NODEPOOL_INGRESS_POLL_INTERVAL",
            "pollInterval",
            DEFAULT_POLL_INTERVAL,
            caster=float,
        )

    def _get_value(self, env_key, yaml_key, default, caster=None):
        val = os.environ.get(env_key, self._config.get(yaml_key, default))
        if caster:
            return caster(val)
        return val

    def _load_config(self):
        try:
            with open(self.config_path, "r") as f:
                config_data = yaml.safe_load(f)
                logger.info(f"Loaded addon configuration from {self.config_path}")
                return config_data if config_data else {}
        except FileNotFoundError:
            logger.info(
                f"Addon config file not found at {self.config_path}, using default values."
            )
            return {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(
                f"Error loading addon configuration from {self.config_path}: {e}"
            )
            return {}
