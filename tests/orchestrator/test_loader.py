"""Tests for the resource loader."""

from pathlib import Path

import pytest

from glbc.exceptions import GlbcException
from glbc.manifest import BaseObject, Ingress, Service
from glbc.orchestrator import LoadOptions, ResourceLoader

INGRESS = """\
---
apiVersion: networking.k8s.io/v1
kind: Ingress
metadata:
  name: echo
  namespace: apps
spec:
  rules:
  - host: echo.example.com
---
apiVersion: v1
kind: ConfigMap
metadata:
  name: ignored
"""

SERVICE = """\
apiVersion: v1
kind: Service
metadata:
  name: echo
  clusterName: root:org:other
"""


async def load(options: LoadOptions) -> list[BaseObject]:
    return [obj async for obj in ResourceLoader().load(options)]


@pytest.fixture(name="manifests")
def manifests_fixture(tmp_path: Path) -> Path:
    (tmp_path / "ingress.yaml").write_text(INGRESS)
    (tmp_path / "nested").mkdir()
    (tmp_path / "nested" / "service.yml").write_text(SERVICE)
    (tmp_path / "README.md").write_text("kind: Service")
    return tmp_path


async def test_load_directory(manifests: Path) -> None:
    """Test supported objects are loaded with the default workspace."""
    objs = await load(LoadOptions(path=manifests, default_workspace="root:org:ws"))
    assert [(type(obj), obj.cluster, obj.namespace) for obj in objs] == [
        (Ingress, "root:org:ws", "apps"),
        (Service, "root:org:other", "default"),
    ]
    ingress = objs[0]
    assert isinstance(ingress, Ingress)
    assert ingress.spec.rules[0].host == "echo.example.com"


async def test_load_non_recursive(manifests: Path) -> None:
    objs = await load(LoadOptions(path=manifests, recursive=False))
    assert [obj.kind for obj in objs] == ["Ingress"]


async def test_load_file(manifests: Path) -> None:
    objs = await load(LoadOptions(path=manifests / "nested" / "service.yml"))
    assert [obj.name for obj in objs] == ["echo"]


async def test_invalid_yaml(tmp_path: Path) -> None:
    (tmp_path / "broken.yaml").write_text("kind: [Ingress\n")
    with pytest.raises(GlbcException, match="Invalid YAML"):
        await load(LoadOptions(path=tmp_path))


async def test_missing_path(tmp_path: Path) -> None:
    with pytest.raises(GlbcException, match="does not exist"):
        await load(LoadOptions(path=tmp_path / "missing"))
