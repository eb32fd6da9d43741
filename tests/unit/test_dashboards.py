"""
Unit Tests for Dashboard Widget Builders
========================================
"""

import pytest

from zabbix_mcp.core import dashboards


pytestmark = pytest.mark.unit


def field_map(widget):
    return {field["name"]: field for field in widget["fields"]}


class TestSvgGraphFields:
    """Test the svggraph data set field layout."""

    def test_dataset_fields_use_indexed_prefix(self):
        fields = dashboards.create_svg_graph_dataset_fields(2, "proxmox", "CPU utilization", 3)

        assert [f["name"] for f in fields] == [
            "ds.2.hosts.0",
            "ds.2.items.0",
            "ds.2.color_palette",
        ]
        assert fields[0] == {"type": dashboards.FIELD_TYPE_STRING, "name": "ds.2.hosts.0", "value": "proxmox"}
        assert fields[2]["value"] == "3"

    def test_widget_palette_defaults_to_dataset_index(self):
        widget = dashboards.create_svg_graph_widget(
            "Graph", 0, 0, 12, 5,
            [{"host_name": "a", "item_name": "x"}, {"host_name": "b", "item_name": "y"}],
        )

        fields = field_map(widget)
        assert widget["type"] == "svggraph"
        assert fields["ds.0.color_palette"]["value"] == "0"
        assert fields["ds.1.color_palette"]["value"] == "1"
        assert fields["righty"]["value"] == "0"
        assert "reference" not in fields

    def test_no_legacy_field_names(self):
        widget = dashboards.create_svg_graph_widget(
            "Graph", 0, 0, 12, 5, [{"host_name": "a", "item_name": "x"}]
        )
        for name in field_map(widget):
            assert not name.startswith("ds.hosts.")
            assert "patterns" not in name


class TestProxmoxLayouts:
    """Test Proxmox dashboard layouts."""

    def test_single_node_layout(self):
        widgets = dashboards.create_proxmox_node_dashboard("pve01", "proxmox")

        assert len(widgets) == 4
        assert [(w["x"], w["y"]) for w in widgets] == [(0, 0), (12, 0), (0, 5), (12, 5)]
        assert all(w["width"] == 12 and w["height"] == 5 for w in widgets)

        cpu = field_map(widgets[0])
        assert cpu["ds.0.items.0"]["value"] == "Node [pve01]: CPU, usage"
        assert cpu["ds.0.hosts.0"]["value"] == "proxmox"
        assert cpu["reference"]["value"] == "PVE01"
        assert field_map(widgets[2])["reference"]["value"] == "LOAD"

    def test_widgets_with_offset(self):
        widgets = dashboards.create_proxmox_widgets("pve02", "proxmox", ["load", "iowait", "cpu"], y_offset=10)

        assert [(w["x"], w["y"]) for w in widgets] == [(0, 10), (12, 10), (0, 15)]
        assert widgets[1]["name"] == "CPU IOWait - Node [pve02]"

    def test_unknown_widget_type(self):
        with pytest.raises(ValueError, match="Unknown widget type"):
            dashboards.create_proxmox_widgets("pve01", "proxmox", ["disk"])

    def test_dual_node_layout(self):
        widgets = dashboards.create_proxmox_dual_node_dashboard("pve01", "pve02")

        assert len(widgets) == 4
        for widget in widgets:
            fields = field_map(widget)
            assert fields["ds.0.color_palette"]["value"] == "0"
            assert fields["ds.1.color_palette"]["value"] == "1"
        memory = field_map(widgets[1])
        assert memory["ds.0.items.0"]["value"] == "Node [pve01]: Memory, used"
        assert memory["ds.1.items.0"]["value"] == "Node [pve02]: Memory, used"


class TestCompleteWidget:
    """Test item-pinned widgets and their validation."""

    def test_complete_widget_is_valid(self):
        widget = dashboards.create_complete_svg_widget(
            "23296", "Zabbix server", "CPU utilization", "CPU", "FF6B6B", 0, 0, 12, 5
        )

        assert dashboards.validate_svg_widget(widget) == []
        fields = field_map(widget)
        assert fields["ds.0.itemids.0"]["type"] == dashboards.FIELD_TYPE_ITEM
        assert widget["view_mode"] == 0

    def test_validate_reports_missing_fields(self):
        widget = dashboards.create_svg_graph_widget(
            "Graph", 0, 0, 12, 5, [{"host_name": "a", "item_name": "x"}]
        )
        assert dashboards.validate_svg_widget(widget) == ["ds.0.itemids.0"]


class TestIopsWidgets:
    """Test disk IO layouts."""

    def test_item_name(self):
        assert dashboards.iops_item_name("sda", "read") == "sda: Read IOPS"

    def test_one_widget_per_host_and_device(self):
        widgets = dashboards.create_iops_widgets(["pve01", "pve02"], ["sda"], time_period="6h")

        assert len(widgets) == 2
        assert [(w["x"], w["y"]) for w in widgets] == [(0, 0), (12, 0)]
        fields = field_map(widgets[1])
        assert fields["ds.0.hosts.0"]["value"] == "pve02"
        assert fields["ds.0.items.0"]["value"] == "sda: Read IOPS"
        assert fields["ds.1.items.0"]["value"] == "sda: Write IOPS"
        assert fields["time_period.from"]["value"] == "now-6h"
        assert fields["time_period.to"]["value"] == "now"

    def test_next_free_row(self):
        assert dashboards.next_free_row([]) == 0
        assert dashboards.next_free_row([{"y": 0, "height": 5}, {"y": 5, "height": 4}]) == 9
