from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import ResourceNotFoundError, ResourceNotUniqueError
from urllib3.exceptions import HTTPError

from errors import ConfigError, DiscoveryError, ListError, NotFound

logger = logging.getLogger("kubectl-backup.k8s")

# (groupVersion, [APIResource as returned by discovery])
CatalogEntry = Tuple[str, List[Dict[str, Any]]]


@dataclass(frozen=True)
class ResourceIdentity:
    group: str
    version: str
    plural: str
    namespaced: bool

    @property
    def api_version(self) -> str:
        return api_version_of(self.group, self.version)


def api_version_of(group: str, version: str) -> str:
    return f"{group}/{version}" if group else version


def split_group_version(group_version: str) -> Tuple[str, str]:
    """
    "apps/v1" -> ("apps", "v1"), "v1" -> ("", "v1").
    """
    group, _, version = group_version.rpartition("/")
    return group, version


# -------------------------------------------------------------------
# Cluster access
# -------------------------------------------------------------------

def load_api_client(
    context: Optional[str] = None,
    kubeconfig: Optional[str] = None,
) -> client.ApiClient:
    """
    Local kubeconfig first. In-cluster service account only when no
    kubeconfig was named explicitly and none could be found.
    """
    cfg = client.Configuration()
    try:
        config.load_kube_config(
            config_file=kubeconfig,
            context=context,
            client_configuration=cfg,
        )
    except (config.ConfigException, OSError) as e:
        if kubeconfig or context:
            raise ConfigError(f"error creating k8 client config: {e}") from e
        try:
            config.load_incluster_config(client_configuration=cfg)
        except config.ConfigException as incluster_err:
            raise ConfigError(
                f"error creating k8 client config: {e}"
            ) from incluster_err
        logger.debug("using in-cluster configuration")

    return client.ApiClient(configuration=cfg)


class KubeCluster:
    """
    The only code that talks to the API server.

    Discovery goes through the raw discovery endpoints so the catalog keeps
    the server's ordering. Listing goes through DynamicClient, which is built
    lazily since constructing it already hits the server.
    """

    def __init__(self, api_client: client.ApiClient):
        self.api_client = api_client
        self._dyn: Optional[DynamicClient] = None

    @property
    def dyn(self) -> DynamicClient:
        if self._dyn is None:
            try:
                self._dyn = DynamicClient(self.api_client)
            except (ApiException, HTTPError) as e:
                raise ConfigError(f"error creating k8 client: {e}") from e
        return self._dyn

    def _get_json(self, path: str) -> Dict[str, Any]:
        return self.api_client.call_api(
            path,
            "GET",
            header_params={"Accept": "application/json"},
            auth_settings=["BearerToken"],
            response_type="object",
            _return_http_data_only=True,
        )

    def discover_catalog(self) -> List[CatalogEntry]:
        catalog: List[CatalogEntry] = []
        try:
            core = self._get_json("/api")
            for version in core.get("versions") or []:
                listing = self._get_json(f"/api/{version}")
                catalog.append((version, listing.get("resources") or []))

            groups = self._get_json("/apis")
            for group in groups.get("groups") or []:
                for gv in group.get("versions") or []:
                    group_version = gv["groupVersion"]
                    listing = self._get_json(f"/apis/{group_version}")
                    catalog.append((group_version, listing.get("resources") or []))
        except (ApiException, HTTPError, ValueError, KeyError) as e:
            raise DiscoveryError(f"error discovering api server resources: {e}") from e

        logger.debug("discovered %d group versions", len(catalog))
        return catalog

    def list_objects(self, identity: ResourceIdentity, namespace: str) -> List[Dict[str, Any]]:
        dyn = self.dyn
        try:
            resource = dyn.resources.get(api_version=identity.api_version, name=identity.plural)
            resp = resource.get(namespace=namespace or None)
        except (ApiException, HTTPError, ResourceNotFoundError, ResourceNotUniqueError) as e:
            raise ListError(f"error listing resource {identity.plural}: {e}") from e

        raw = resp.to_dict() if hasattr(resp, "to_dict") else resp
        return fill_list_items(raw, identity)


def fill_list_items(raw: Dict[str, Any], identity: ResourceIdentity) -> List[Dict[str, Any]]:
    """
    List responses carry apiVersion/kind only on the list itself.
    Copy them onto every item so each one stands alone as a manifest.
    """
    list_kind = raw.get("kind") or ""
    kind = list_kind[: -len("List")] if list_kind.endswith("List") else list_kind

    items = []
    for item in raw.get("items") or []:
        item.setdefault("apiVersion", raw.get("apiVersion") or identity.api_version)
        if kind:
            item.setdefault("kind", kind)
        items.append(item)
    return items


def connect(context: Optional[str] = None, kubeconfig: Optional[str] = None) -> KubeCluster:
    return KubeCluster(load_api_client(context=context, kubeconfig=kubeconfig))


# -------------------------------------------------------------------
# Locator
# -------------------------------------------------------------------

def _singular_name(api_resource: Dict[str, Any]) -> str:
    # Older servers leave singularName empty for built-in kinds.
    return api_resource.get("singularName") or (api_resource.get("kind") or "").lower()


def find_in_catalog(catalog: Iterable[CatalogEntry], kind: str) -> ResourceIdentity:
    """
    First match in catalog order wins. If two groups expose the same
    singular name, the server's group ordering decides which one is used.
    """
    for group_version, resources in catalog:
        for ar in resources:
            name = ar.get("name") or ""
            if "/" in name:
                continue
            if _singular_name(ar) == kind:
                group, version = split_group_version(group_version)
                return ResourceIdentity(
                    group=group,
                    version=version,
                    plural=name,
                    namespaced=bool(ar.get("namespaced")),
                )
    raise NotFound(kind)


def locate(cluster, kind: str) -> ResourceIdentity:
    identity = find_in_catalog(cluster.discover_catalog(), kind)
    logger.info(
        "resolved %s to %s %s (namespaced=%s)",
        kind, identity.api_version, identity.plural, identity.namespaced,
    )
    return identity
