"""Tests for ARM resource id parsing."""

import pytest

from tests.fixtures.azure_responses import SUBSCRIPTION_ID, nic_id, subnet_id
from vmclone.errors import CloneError
from vmclone.resource_id import (
    ResourceIdError,
    build_resource_id,
    parse_resource_id,
    parse_subnet_id,
)


class TestParseResourceId:
    """Tests for parse_resource_id."""

    def test_top_level_resource(self):
        rid = parse_resource_id(nic_id("rg1", "web01-nic"))

        assert rid.subscription_id == SUBSCRIPTION_ID
        assert rid.resource_group == "rg1"
        assert rid.provider == "Microsoft.Network"
        assert rid.types == ("networkInterfaces",)
        assert rid.name == "web01-nic"
        assert rid.resource_type == "Microsoft.Network/networkInterfaces"

    def test_child_resource(self):
        rid = parse_resource_id(subnet_id("net-rg", "vnet1", "default"))

        assert rid.types == ("virtualNetworks", "subnets")
        assert rid.names == ("vnet1", "default")
        assert rid.name == "default"

    @pytest.mark.parametrize(
        "bad_id",
        [
            "",
            "subscriptions/x/resourceGroups/rg/providers/Microsoft.Network/networkInterfaces/n",
            "/subscriptions/x/resourceGroups/rg",
            "/subscriptions/x/resourceGroups//providers/Microsoft.Network/networkInterfaces/n",
            "/subs/x/resourceGroups/rg/providers/Microsoft.Network/networkInterfaces/n",
            "/subscriptions/x/groups/rg/providers/Microsoft.Network/networkInterfaces/n",
            "/subscriptions/x/resourceGroups/rg/providers/Microsoft.Network/virtualNetworks/v/subnets",
        ],
    )
    def test_malformed_ids_rejected(self, bad_id):
        with pytest.raises(ResourceIdError):
            parse_resource_id(bad_id)

    def test_error_is_clone_error(self):
        assert issubclass(ResourceIdError, CloneError)


class TestParseSubnetId:
    """Tests for parse_subnet_id."""

    def test_subnet_reference(self):
        ref = parse_subnet_id(subnet_id("network-rg", "hub-vnet", "apps"))

        assert ref.resource_group == "network-rg"
        assert ref.vnet_name == "hub-vnet"
        assert ref.subnet_name == "apps"
        assert ref.subscription_id == SUBSCRIPTION_ID

    def test_rejects_non_subnet(self):
        with pytest.raises(ResourceIdError):
            parse_subnet_id(nic_id("rg1", "web01-nic"))

    def test_cross_resource_group_is_case_insensitive(self):
        ref = parse_subnet_id(subnet_id("RG1", "vnet1", "default"))

        assert not ref.is_cross_resource_group("rg1")
        assert ref.is_cross_resource_group("other-rg")


class TestBuildResourceId:
    def test_matches_az_id(self):
        built = build_resource_id(
            SUBSCRIPTION_ID, "rg1", "Microsoft.Network/networkInterfaces", "web01-nic"
        )

        assert built == nic_id("rg1", "web01-nic")

    def test_parses_back(self):
        rid = parse_resource_id(
            build_resource_id(SUBSCRIPTION_ID, "rg2", "Microsoft.Compute/disks", "web02-osdisk")
        )

        assert rid.resource_group == "rg2"
        assert rid.types == ("disks",)
        assert rid.name == "web02-osdisk"
