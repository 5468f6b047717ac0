"""Tests for the plugin registry and entry-point discovery."""

from __future__ import annotations

from typing import Any
from unittest.mock import patch

import pytest

from shellcred.exceptions import NotFoundError, PluginError
from shellcred.importer import EnvVarPair, TryAll
from shellcred.models import FieldName, GlobalConfig, PluginsConfig
from shellcred.plugins.manager import (
    BUILTIN_PLUGINS,
    ENTRY_POINT_GROUP,
    PluginRegistry,
    create_default_registry,
)
from shellcred.provision import EnvVarProvisioner
from shellcred.schema import CredentialField, CredentialType, Executable, Plugin

ENTRY_POINTS = "shellcred.plugins.manager.importlib.metadata.entry_points"


def vault_plugin() -> Plugin:
    return Plugin(
        name="vault",
        platform="HashiCorp Vault",
        credentials=[
            CredentialType(
                name="token",
                fields=[CredentialField(FieldName.TOKEN, secret=True)],
                importer=TryAll(EnvVarPair({"VAULT_TOKEN": FieldName.TOKEN})),
                default_provisioner=EnvVarProvisioner({"VAULT_TOKEN": FieldName.TOKEN}),
            )
        ],
        executables=[Executable(name="Vault CLI", runs=["vault"], uses=["token"])],
    )


class MockEP:
    def __init__(self, name: str, target: Any) -> None:
        self.name = name
        self._target = target

    def load(self) -> Any:
        return self._target


class BrokenEP:
    name = "broken"

    def load(self) -> Any:
        raise ImportError("missing dependency")


@pytest.fixture
def config() -> GlobalConfig:
    return GlobalConfig()


class TestBuiltins:
    def test_all_builtins_load(self, config: GlobalConfig) -> None:
        registry = PluginRegistry()
        loaded = registry.discover(config, entry_points=False)
        assert loaded == list(BUILTIN_PLUGINS)
        assert [p.name for p in registry.list_plugins()] == ["aws", "gcloud", "mysql", "terraform"]

    def test_credential_namespaces(self, config: GlobalConfig) -> None:
        registry = PluginRegistry()
        registry.discover(config, entry_points=False)
        assert registry.credential("aws").namespace == "aws/access_key"
        assert registry.credential("terraform", "access_key").namespace == "terraform/access_key"
        assert registry.credential("mysql").namespace == "mysql/database_credentials"

    def test_disabled(self) -> None:
        registry = PluginRegistry()
        registry.discover(GlobalConfig(plugins=PluginsConfig(disabled=["mysql"])), entry_points=False)
        assert "mysql" not in registry
        assert len(registry) == 3

    def test_enabled_allowlist(self) -> None:
        registry = PluginRegistry()
        registry.discover(GlobalConfig(plugins=PluginsConfig(enabled=["aws"])), entry_points=False)
        assert [p.name for p in registry.list_plugins()] == ["aws"]


class TestLookup:
    def test_unknown_plugin(self, config: GlobalConfig) -> None:
        registry = PluginRegistry()
        registry.discover(config, entry_points=False)
        with pytest.raises(NotFoundError, match="available: aws"):
            registry.get("nope")

    def test_unknown_credential(self, config: GlobalConfig) -> None:
        registry = PluginRegistry()
        registry.discover(config, entry_points=False)
        with pytest.raises(NotFoundError, match="access_key"):
            registry.credential("aws", "session_token")

    def test_executable_lookup_is_per_plugin(self, config: GlobalConfig) -> None:
        registry = PluginRegistry()
        registry.discover(config, entry_points=False)
        executable = registry.get("mysql").executable("mysql")
        assert executable is not None and executable.name == "MySQL CLI"
        assert registry.get("aws").executable("mysql") is None

    @pytest.mark.parametrize(
        "args,expected",
        [(["kv", "get", "secret/x"], True), (["--help"], False), (["kv", "-h"], False), (["version"], False)],
    )
    def test_default_needs_auth_skips_help_and_version(self, args: list[str], expected: bool) -> None:
        executable = vault_plugin().executable("vault")
        assert executable is not None
        assert executable.needs_auth(args) is expected


class TestRegister:
    def test_duplicate(self) -> None:
        registry = PluginRegistry()
        registry.register(vault_plugin())
        with pytest.raises(PluginError, match="already loaded"):
            registry.register(vault_plugin())

    def test_invalid_definition(self) -> None:
        plugin = vault_plugin()
        plugin.executables.append(Executable(name="Bad", runs=["bad"], uses=["missing"]))
        with pytest.raises(PluginError, match="unknown credential 'missing'"):
            PluginRegistry().register(plugin)

    def test_generator_without_remover(self) -> None:
        plugin = vault_plugin()
        plugin.credentials[0].key_generator = lambda in_, out: {}
        with pytest.raises(PluginError, match="declared together"):
            PluginRegistry().register(plugin)

    def test_plugin_name_is_stamped_on_credentials(self) -> None:
        assert vault_plugin().credential().namespace == "vault/token"


class TestEntryPoints:
    def test_loads_factory(self, config: GlobalConfig) -> None:
        registry = PluginRegistry()
        with patch(ENTRY_POINTS, return_value=[MockEP("vault", vault_plugin)]) as entry_points:
            loaded = registry.discover(config)
        entry_points.assert_called_once_with(group=ENTRY_POINT_GROUP)
        assert loaded[-1] == "vault"
        assert registry.credential("vault").namespace == "vault/token"

    def test_accepts_plugin_instance(self, config: GlobalConfig) -> None:
        registry = PluginRegistry()
        with patch(ENTRY_POINTS, return_value=[MockEP("vault", vault_plugin())]):
            registry.discover(config)
        assert "vault" in registry

    def test_broken_entry_point_is_skipped(self, config: GlobalConfig, caplog) -> None:
        registry = PluginRegistry()
        with patch(ENTRY_POINTS, return_value=[BrokenEP(), MockEP("vault", vault_plugin)]):
            with caplog.at_level("WARNING", logger="shellcred"):
                loaded = registry.discover(config)
        assert "vault" in loaded
        assert "broken" not in loaded
        assert any("missing dependency" in r.getMessage() for r in caplog.records)

    def test_wrong_type_is_skipped(self, config: GlobalConfig) -> None:
        registry = PluginRegistry()
        with patch(ENTRY_POINTS, return_value=[MockEP("junk", lambda: "not a plugin")]):
            loaded = registry.discover(config)
        assert "junk" not in loaded

    def test_name_clash_with_builtin_is_skipped(self, config: GlobalConfig) -> None:
        def fake_aws() -> Plugin:
            plugin = vault_plugin()
            plugin.name = "aws"
            return plugin

        registry = PluginRegistry()
        with patch(ENTRY_POINTS, return_value=[MockEP("aws-fork", fake_aws)]):
            registry.discover(config)
        assert registry.get("aws").platform == "AWS"

    def test_disabled_entry_point(self) -> None:
        registry = PluginRegistry()
        config = GlobalConfig(plugins=PluginsConfig(disabled=["vault"]))
        with patch(ENTRY_POINTS, return_value=[MockEP("vault", vault_plugin)]):
            loaded = registry.discover(config)
        assert "vault" not in loaded


def test_create_default_registry() -> None:
    with patch(ENTRY_POINTS, return_value=[]):
        registry = create_default_registry()
    assert len(registry) == len(BUILTIN_PLUGINS)
