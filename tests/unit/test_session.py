"""
Unit tests for the session-local kubectl config file synthesizer
"""

import os

import pytest
import yaml

from kconfig.config import Config
from kconfig.errors import KubeconfigError, NicknameError
from kconfig.kubeconfig import KCONFIG_CONTEXT_NAME
from kconfig.models import KconfigOptions
from kconfig.session import (
    SessionConfigSynthesizer,
    get_existing_session_filename,
    nickname_dir,
    session_dir,
)


@pytest.fixture
def synthesizer(config, temp_root):
    return SessionConfigSynthesizer(config, environ={}, temp_root=temp_root)


def load(path):
    return yaml.safe_load(path.read_text())


def search_path_elements(result):
    return result.kubeconfig_env_var.split(os.pathsep)


class TestPointerFiles:
    """Nicknames that only select a context"""

    def test_simple_nickname(self, synthesizer, temp_root, home_dir):
        result = synthesizer.resolve("dev")

        local, base = search_path_elements(result)
        assert local == str(result.local_config_file)
        assert base == str(home_dir / ".kube" / "config")
        assert result.local_config_file.parent == session_dir(temp_root)
        assert result.created is True
        assert result.kubectl_executable == "kubectl"
        assert result.overrides_description == ""
        assert result.context_namespace == "devnamespace1"

        content = load(result.local_config_file)
        assert content["current-context"] == "dev"
        assert content["contexts"] == []

    def test_base_current_context(self, synthesizer):
        result = synthesizer.resolve("current")
        assert load(result.local_config_file)["current-context"] == "dev"

    def test_context_override(self, synthesizer):
        result = synthesizer.resolve("dev", KconfigOptions(context="prod"))

        assert load(result.local_config_file)["current-context"] == "prod"
        assert result.context_namespace == "prod"
        # Only namespace and user overrides are described.
        assert result.overrides_description == ""

    def test_context_without_namespace(self, synthesizer):
        result = synthesizer.resolve("dev-no-namespace-in-context")
        assert result.context_namespace == "default"


class TestSyntheticContext:
    """Nicknames or overrides that change namespace or user"""

    def test_nickname_namespace(self, synthesizer):
        result = synthesizer.resolve("dev-namespace")

        content = load(result.local_config_file)
        assert content["current-context"] == KCONFIG_CONTEXT_NAME
        assert content["contexts"] == [{
            "name": KCONFIG_CONTEXT_NAME,
            "context": {
                "cluster": "dev-cluster",
                "user": "devuser1",
                "namespace": "namespace-override",
            },
        }]
        assert result.overrides_description == ""
        assert result.context_namespace == "namespace-override"

    def test_nickname_user(self, synthesizer):
        result = synthesizer.resolve("dev-user")

        context = load(result.local_config_file)["contexts"][0]["context"]
        assert context["user"] == "devuser2"
        assert context["namespace"] == "devnamespace1"
        assert result.context_namespace == "devnamespace1"

    def test_namespace_override_beats_nickname(self, synthesizer):
        result = synthesizer.resolve("dev-namespace", KconfigOptions(namespace="other"))

        context = load(result.local_config_file)["contexts"][0]["context"]
        assert context["namespace"] == "other"
        assert result.overrides_description == "ns=other"

    def test_namespace_and_user_overrides(self, synthesizer):
        result = synthesizer.resolve("dev", KconfigOptions(namespace="web", user="devuser2"))

        context = load(result.local_config_file)["contexts"][0]["context"]
        assert context == {"cluster": "dev-cluster", "user": "devuser2", "namespace": "web"}
        assert result.overrides_description == "ns=web,u=devuser2"

    def test_overridden_namespace_always_emitted(self, synthesizer):
        for nickname in ["dev", "current", "dev-user", "dev-no-namespace-in-context", "dev-namespace"]:
            result = synthesizer.resolve(nickname, KconfigOptions(namespace="forced"))
            context = load(result.local_config_file)["contexts"][0]["context"]
            assert context["namespace"] == "forced"

    def test_base_context_not_mutated(self, synthesizer, home_dir):
        before = (home_dir / ".kube" / "config").read_bytes()
        synthesizer.resolve("dev-namespace-user", KconfigOptions(namespace="web"))
        assert (home_dir / ".kube" / "config").read_bytes() == before


class TestSessionFileReuse:
    """One session file per shell"""

    def test_reuse_file_named_by_kubeconfig(self, config, temp_root):
        first = SessionConfigSynthesizer(config, environ={}, temp_root=temp_root).resolve("dev")

        environ = {"KUBECONFIG": first.kubeconfig_env_var}
        second = SessionConfigSynthesizer(config, environ=environ, temp_root=temp_root).resolve("dev-namespace")

        assert second.local_config_file == first.local_config_file
        assert second.created is False
        assert load(second.local_config_file)["current-context"] == KCONFIG_CONTEXT_NAME
        assert len(list(session_dir(temp_root).iterdir())) == 1

    def test_rerun_is_byte_identical(self, config, temp_root):
        overrides = KconfigOptions(namespace="web", user="devuser2")
        first = SessionConfigSynthesizer(config, environ={}, temp_root=temp_root).resolve("dev", overrides)
        first_bytes = first.local_config_file.read_bytes()

        environ = {"KUBECONFIG": first.kubeconfig_env_var}
        second = SessionConfigSynthesizer(config, environ=environ, temp_root=temp_root).resolve("dev", overrides)

        assert second.kubeconfig_env_var == first.kubeconfig_env_var
        assert second.local_config_file.read_bytes() == first_bytes

    def test_foreign_kubeconfig_gets_new_file(self, config, temp_root, tmp_path):
        environ = {"KUBECONFIG": str(tmp_path / "elsewhere.yaml")}
        result = SessionConfigSynthesizer(config, environ=environ, temp_root=temp_root).resolve("dev")

        assert result.created is True
        assert result.local_config_file.parent == session_dir(temp_root)

    def test_recreates_deleted_session_file(self, config, temp_root):
        first = SessionConfigSynthesizer(config, environ={}, temp_root=temp_root).resolve("dev")
        first.local_config_file.unlink()

        environ = {"KUBECONFIG": first.kubeconfig_env_var}
        SessionConfigSynthesizer(config, environ=environ, temp_root=temp_root).resolve("dev")

        assert first.local_config_file.exists()


class TestOneShotFiles:
    """Files created for the kubectl launcher"""

    def test_named_after_nickname(self, synthesizer, temp_root):
        result = synthesizer.resolve("dev-namespace", session_mode=False)

        assert result.local_config_file == nickname_dir(temp_root) / "dev-namespace.yaml"
        assert result.created is False
        assert load(result.local_config_file)["contexts"][0]["context"]["namespace"] == "namespace-override"

    def test_overrides_not_allowed(self, synthesizer):
        with pytest.raises(ValueError):
            synthesizer.resolve("dev", KconfigOptions(namespace="web"), session_mode=False)


class TestResolution:
    """Executable, search path and error handling"""

    def test_nickname_executable(self, synthesizer):
        assert synthesizer.resolve("dev-with-executable").kubectl_executable == "kubectl-99"

    def test_default_kubectl_preference(self, write_kconfig, home_dir, temp_root):
        write_kconfig(preferences={"default_kubectl": "kubectl-default"})
        config = Config(home_dir=home_dir, environ={})
        result = SessionConfigSynthesizer(config, environ={}, temp_root=temp_root).resolve("dev")

        assert result.kubectl_executable == "kubectl-default"

    def test_teleport_proxy(self, synthesizer):
        assert synthesizer.resolve("dev-with-teleport-proxy").teleport_proxy == "tport-proxy1"
        assert synthesizer.resolve("dev").teleport_proxy is None
        overridden = synthesizer.resolve("dev-with-teleport-proxy", KconfigOptions(teleport_proxy="other"))
        assert overridden.teleport_proxy == "other"

    def test_nickname_kubeconfig(self, synthesizer, home_dir):
        result = synthesizer.resolve("dev-with-kubeconfig")

        assert search_path_elements(result)[1] == str(home_dir / ".kube" / "testing.config")
        assert load(result.local_config_file)["current-context"] == "testing"
        assert result.context_namespace == "testns"

    def test_kubeconfig_override(self, synthesizer, home_dir):
        testing = str(home_dir / ".kube" / "testing.config")
        result = synthesizer.resolve("current", KconfigOptions(kubeconfig=testing))

        assert search_path_elements(result)[1] == testing
        assert load(result.local_config_file)["current-context"] == "testing"

    def test_base_kubeconfig_multipath(self, write_kconfig, home_dir, temp_root):
        kube = home_dir / ".kube"
        base = os.pathsep.join([str(kube / "testing.missing"), str(kube / "testing.config")])
        write_kconfig(preferences={"base_kubeconfig": base})
        config = Config(home_dir=home_dir, environ={})
        result = SessionConfigSynthesizer(config, environ={}, temp_root=temp_root).resolve("current")

        assert search_path_elements(result)[1:] == [str(kube / "testing.missing"), str(kube / "testing.config")]
        assert load(result.local_config_file)["current-context"] == "testing"

    def test_unknown_nickname(self, synthesizer, temp_root):
        with pytest.raises(NicknameError, match='Nickname "doesnt-exist" is not defined.'):
            synthesizer.resolve("doesnt-exist")
        assert not session_dir(temp_root).exists()

    def test_bad_definition(self, synthesizer):
        with pytest.raises(NicknameError, match="bad-option"):
            synthesizer.resolve("bad-option")

    def test_missing_context(self, synthesizer, temp_root):
        with pytest.raises(KubeconfigError, match='Context "nope" doesn\'t exist.'):
            synthesizer.resolve("missing-context")
        assert not session_dir(temp_root).exists()

    def test_malformed_context(self, synthesizer, home_dir, temp_root):
        (home_dir / ".kube" / "config").write_text("contexts:\n- name: dev\n  context: oops\n")

        with pytest.raises(KubeconfigError, match="is not a mapping"):
            synthesizer.resolve("dev-namespace")
        assert not session_dir(temp_root).exists()

    def test_no_current_context(self, synthesizer, tmp_path):
        with pytest.raises(KubeconfigError, match="There is no current context"):
            synthesizer.resolve("current", KconfigOptions(kubeconfig=str(tmp_path / "missing")))


class TestExistingSessionFilename:
    """Tests for get_existing_session_filename"""

    def test_session_file_first(self, temp_root):
        path = session_dir(temp_root) / "abc.yaml"
        value = os.pathsep.join([str(path), "/home/u/.kube/config"])
        assert get_existing_session_filename(value, temp_root) == path

    def test_not_a_session_file(self, temp_root):
        assert get_existing_session_filename("/home/u/.kube/config", temp_root) is None
        assert get_existing_session_filename(str(nickname_dir(temp_root) / "dev.yaml"), temp_root) is None

    def test_empty(self, temp_root):
        assert get_existing_session_filename(None, temp_root) is None
        assert get_existing_session_filename("", temp_root) is None


class TestRemoveSessionFile:
    """Tests for remove_session_file"""

    def test_removes_file(self, config, temp_root):
        result = SessionConfigSynthesizer(config, environ={}, temp_root=temp_root).resolve("dev")

        environ = {"KUBECONFIG": result.kubeconfig_env_var}
        removed = SessionConfigSynthesizer(config, environ=environ, temp_root=temp_root).remove_session_file()

        assert removed == result.local_config_file
        assert not result.local_config_file.exists()

    def test_already_removed(self, config, temp_root):
        path = session_dir(temp_root) / "gone.yaml"
        synthesizer = SessionConfigSynthesizer(config, environ={"KUBECONFIG": str(path)}, temp_root=temp_root)
        assert synthesizer.remove_session_file() == path

    def test_no_session_file(self, config, temp_root, home_dir):
        base = home_dir / ".kube" / "config"
        synthesizer = SessionConfigSynthesizer(config, environ={"KUBECONFIG": str(base)}, temp_root=temp_root)

        assert synthesizer.remove_session_file() is None
        assert base.exists()
