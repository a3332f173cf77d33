"""Tests for target VM configuration."""

import pytest

from tests.fixtures.azure_responses import vm_json
from tests.mocks.azure_mock import create_clone_environment
from vmclone.errors import ConflictError, ErrorKind, ProviderFailureError
from vmclone.modules.interaction_handler import MockInteractionHandler
from vmclone.source_resolver import resolve_source
from vmclone.target_config import (
    InvalidNameError,
    TargetConfig,
    configure_target,
    validate_vm_name,
)


@pytest.fixture
def client():
    return create_clone_environment()


@pytest.fixture
def source(client):
    resolved = resolve_source(client, "rg1", "web01")
    client.calls.clear()
    return resolved


class TestValidateVmName:
    @pytest.mark.parametrize("name", ["web02", "a", "web-02_x", "Web.02a", "a" * 64])
    def test_valid(self, name):
        assert validate_vm_name(name) == name

    @pytest.mark.parametrize("name", ["", "   ", "-web", "web-", "web.", "web@02", "a" * 65])
    def test_invalid(self, name):
        with pytest.raises(InvalidNameError, match="Invalid VM name"):
            validate_vm_name(name)

    def test_strips_whitespace(self):
        assert validate_vm_name("  web02 ") == "web02"

    def test_invalid_name_is_precondition_error(self):
        with pytest.raises(InvalidNameError) as exc_info:
            validate_vm_name("web@02")

        assert exc_info.value.kind is ErrorKind.CONFLICT
        assert not isinstance(exc_info.value, ProviderFailureError)


class TestTargetConfig:
    def test_derived_names(self):
        target = TargetConfig(name="web02", size="Standard_B2s", resource_group="rg1")

        assert target.disk_name == "web02-osdisk"
        assert target.nic_name == "web02-nic"
        assert target.nsg_name == "web02-nsg"


class TestConfigureTarget:
    """Tests for configure_target."""

    def test_values_given_skip_prompts(self, client, source):
        handler = MockInteractionHandler()

        target = configure_target(client, handler, source, name="web02", size="Standard_D2s_v3")

        assert target == TargetConfig("web02", "Standard_D2s_v3", "rg1")
        assert handler.interactions == []

    def test_prompts_for_name_and_size(self, client, source):
        handler = MockInteractionHandler(text_responses=["web02", None])

        target = configure_target(client, handler, source)

        assert target.name == "web02"
        assert target.size == "Standard_B2s"
        prompts = handler.get_interactions_by_type("text")
        assert prompts[1]["default"] == "Standard_B2s"

    def test_conflict_with_existing_vm(self, client, source):
        client.add_vm(vm_json("web02", "rg1"))

        with pytest.raises(ConflictError, match="already exists"):
            configure_target(client, MockInteractionHandler(), source, name="web02", size="x")

    def test_conflict_check_is_case_insensitive(self, client, source):
        client.add_vm(vm_json("web02", "rg1"))

        with pytest.raises(ConflictError):
            configure_target(client, MockInteractionHandler(), source, name="WEB02", size="x")

    def test_source_name_is_conflict(self, client, source):
        with pytest.raises(ConflictError, match="source VM's own name"):
            configure_target(client, MockInteractionHandler(), source, name="web01", size="x")

    def test_invalid_name_before_lookup(self, client, source):
        with pytest.raises(InvalidNameError):
            configure_target(client, MockInteractionHandler(), source, name="bad name!", size="x")

        assert not [c for c in client.calls if c[0] == "find_vm"]

    def test_valid_name_checked_for_collision(self, client, source):
        configure_target(client, MockInteractionHandler(), source, name="web02", size="x")

        assert ("find_vm", ("rg1", "web02")) in client.calls

    def test_size_not_validated(self, client, source):
        target = configure_target(
            client, MockInteractionHandler(), source, name="web02", size="Standard_Nope"
        )

        assert target.size == "Standard_Nope"
