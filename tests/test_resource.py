"""Tests for resource identities and identity mapping."""

import copy
from typing import Any

from proxy_apiserver.objects import ObjectList
from proxy_apiserver.resource import IdentityMapper, ResourceIdentity

EXTERNAL = ResourceIdentity(
    group="apps.maisem.dev", version="v1", kind="Deployment", resource="deployments"
)
INTERNAL = ResourceIdentity(
    group="apps", version="v1", kind="Deployment", resource="deployments"
)
CORE = ResourceIdentity(group="", version="v1", kind="ConfigMap", resource="configmaps")


def deployment(name: str) -> dict[str, Any]:
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {
            "name": name,
            "namespace": "default",
            "uid": f"uid-{name}",
            "resourceVersion": "7",
            "labels": {"app": name},
        },
        "spec": {"replicas": 2},
        "status": {"readyReplicas": 1},
    }


def test_api_version() -> None:
    """Test apiVersion for named and core groups."""
    assert EXTERNAL.api_version == "apps.maisem.dev/v1"
    assert INTERNAL.api_version == "apps/v1"
    assert CORE.api_version == "v1"
    assert EXTERNAL.list_kind == "DeploymentList"


def test_str() -> None:
    assert str(EXTERNAL) == "deployments.apps.maisem.dev"
    assert str(CORE) == "configmaps"


def test_stamp_object() -> None:
    """Test stamping only changes apiVersion and kind."""
    obj = deployment("web")
    expected = copy.deepcopy(obj)
    expected["apiVersion"] = "apps.maisem.dev/v1"

    result = EXTERNAL.stamp_object(obj)

    assert result is obj
    assert obj == expected


def test_stamp_empty_object() -> None:
    assert CORE.stamp_object({}) == {"apiVersion": "v1", "kind": "ConfigMap"}


def test_stamp_list() -> None:
    """Test stamping a list stamps the list and every item."""
    object_list = ObjectList(
        api_version="apps/v1",
        kind="DeploymentList",
        items=[deployment("web"), deployment("db")],
    )

    result = EXTERNAL.stamp_list(object_list)

    assert result is object_list
    assert object_list.api_version == "apps.maisem.dev/v1"
    assert object_list.kind == "DeploymentList"
    assert [item["apiVersion"] for item in object_list.items] == [
        "apps.maisem.dev/v1",
        "apps.maisem.dev/v1",
    ]
    assert [item["metadata"]["name"] for item in object_list.items] == ["web", "db"]


def test_mapper_round_trip() -> None:
    """Test mapping to internal and back only changes the identity fields."""
    mapper = IdentityMapper(external=EXTERNAL, internal=INTERNAL)
    obj = EXTERNAL.stamp_object(deployment("web"))
    original = copy.deepcopy(obj)

    internal = mapper.to_internal(obj)
    assert internal["apiVersion"] == "apps/v1"
    assert internal["kind"] == "Deployment"
    assert obj == original

    external = mapper.to_external(internal)
    assert external == original


def test_to_internal_does_not_alias() -> None:
    """Test the internal copy shares no nested state with the caller's object."""
    mapper = IdentityMapper(external=EXTERNAL, internal=INTERNAL)
    obj = EXTERNAL.stamp_object(deployment("web"))

    internal = mapper.to_internal(obj)
    internal["metadata"]["labels"]["app"] = "changed"
    internal["spec"]["replicas"] = 5

    assert obj["metadata"]["labels"]["app"] == "web"
    assert obj["spec"]["replicas"] == 2


def test_identity_from_dict() -> None:
    identity = ResourceIdentity.from_dict(
        {"group": "", "version": "v1", "kind": "ConfigMap", "resource": "configmaps"}
    )
    assert identity == CORE
