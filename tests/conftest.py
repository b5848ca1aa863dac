"""
Pytest configuration and shared fixtures for kconfig tests
"""

import os
import shlex
import tempfile
from pathlib import Path

import pytest
import yaml

from kconfig.config import Config


BASE_KUBECONFIG = """\
apiVersion: v1
kind: Config
current-context: dev
clusters:
- name: dev-cluster
  cluster:
    server: https://dev.example.com
- name: prod-cluster
  cluster:
    server: https://prod.example.com
users:
- name: devuser1
  user:
    token: dev-token-1
- name: devuser2
  user:
    token: dev-token-2
contexts:
- name: dev
  context:
    cluster: dev-cluster
    user: devuser1
    namespace: devnamespace1
- name: dev-no-ns
  context:
    cluster: dev-cluster
    user: devuser1
- name: prod
  context:
    cluster: prod-cluster
    user: devuser1
    namespace: prod
"""

TESTING_KUBECONFIG = """\
apiVersion: v1
kind: Config
current-context: testing
contexts:
- name: testing
  context:
    cluster: testing-cluster
    user: tester
    namespace: testns
- name: dev
  context:
    cluster: shadowed-cluster
    user: nobody
"""


def default_nicknames(kube_dir: Path) -> dict:
    return {
        "dev": "--context dev",
        "current": "kubectl",
        "dev-namespace": "--context dev -n namespace-override",
        "dev-user": "--context dev --user devuser2",
        "dev-namespace-user": "--context dev --namespace namespace-override --user devuser2",
        "dev-no-namespace-in-context": "--context dev-no-ns",
        "dev-with-executable": "kubectl-99 --context dev",
        "dev-with-kubeconfig": f"--kubeconfig {kube_dir / 'testing.config'}",
        "dev-with-teleport-proxy": "--context dev --teleport-proxy tport-proxy1",
        "missing-context": "--context nope",
        "bad-option": "--context dev --bad-option",
    }


@pytest.fixture
def home_dir(tmp_path, monkeypatch):
    """A home directory with ~/.kube/config and ~/.kube/testing.config"""
    home = tmp_path / "home"
    kube_dir = home / ".kube"
    kube_dir.mkdir(parents=True)
    (kube_dir / "config").write_text(BASE_KUBECONFIG)
    (kube_dir / "testing.config").write_text(TESTING_KUBECONFIG)

    monkeypatch.setenv("HOME", str(home))
    for name in list(os.environ):
        if name.startswith("KCONFIG_") or name in ("KUBECONFIG", "_KCONFIG_KSET", "_KCONFIG_OLDKSET", "_KCONFIG_KUBECTL"):
            monkeypatch.delenv(name, raising=False)

    return home


@pytest.fixture
def temp_root(tmp_path, monkeypatch):
    """Redirect tempfile.gettempdir() so local config files land under tmp_path"""
    root = tmp_path / "tmp"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root


@pytest.fixture
def write_kconfig(home_dir):
    """Write ~/.kube/kconfig.yaml with the given preferences and nicknames"""

    def _write(preferences=None, nicknames=None):
        content = {
            "preferences": preferences or {},
            "nicknames": default_nicknames(home_dir / ".kube") if nicknames is None else nicknames,
        }
        path = home_dir / ".kube" / "kconfig.yaml"
        path.write_text(yaml.safe_dump(content))
        return path

    return _write


@pytest.fixture
def config(write_kconfig, home_dir):
    """Config loaded from the default kconfig.yaml"""
    write_kconfig()
    return Config(home_dir=home_dir, environ={})


def parse_statements(output: str) -> dict:
    """Turn kconfig-util shell output into {variable: value}; unset gives None"""
    variables = {}
    for line in output.splitlines():
        tokens = shlex.split(line.rstrip(";"))
        if not tokens:
            continue
        if tokens[0] == "unset":
            variables[tokens[1]] = None
            continue
        if tokens[0] == "export":
            tokens = tokens[1:]
        name, _, value = tokens[0].partition("=")
        variables[name] = value
    return variables


@pytest.fixture
def parse_output():
    return parse_statements
