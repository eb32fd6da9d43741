"""
Dashboard Widget Builders
=========================

Pure helpers that shape Zabbix dashboard widget payloads.

Working field layout for ``svggraph`` widgets:

- ``ds.{n}.hosts.0`` / ``ds.{n}.items.0`` / ``ds.{n}.color_palette`` per data set
- never ``ds.hosts.{n}.0``; the frontend rejects it with
  "Invalid parameter 'Data set 1/hosts': cannot be empty"
- ``ds.host_patterns`` / ``ds.item_patterns`` are not needed
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

# Widget field value types understood by dashboard.create
FIELD_TYPE_INTEGER = 0
FIELD_TYPE_STRING = 1
FIELD_TYPE_ITEM = 4

SVG_GRAPH_WIDGET = "svggraph"

# Dashboard grid is 24 columns wide in Zabbix 6.x, 72 in 7.x; layouts here use 24
GRID_WIDTH = 24
DEFAULT_WIDGET_HEIGHT = 5

Widget = Dict[str, Any]
WidgetField = Dict[str, Any]


class _ProxmoxItemPatterns:
    """Item names published by the Proxmox VE by HTTP template."""

    CPU_UTILIZATION = "CPU utilization"

    @staticmethod
    def node_cpu_usage(node: str) -> str:
        return f"Node [{node}]: CPU, usage"

    @staticmethod
    def node_memory_used(node: str) -> str:
        return f"Node [{node}]: Memory, used"

    @staticmethod
    def node_load_average(node: str) -> str:
        return f"Node [{node}]: CPU, loadavg"

    @staticmethod
    def node_io_wait(node: str) -> str:
        return f"Node [{node}]: CPU, iowait"


PROXMOX_ITEM_PATTERNS = _ProxmoxItemPatterns()

# widget type -> (title, item name builder, reference)
PROXMOX_WIDGET_TYPES = {
    "cpu": ("CPU Usage", PROXMOX_ITEM_PATTERNS.node_cpu_usage, "CPU"),
    "memory": ("Memory Used", PROXMOX_ITEM_PATTERNS.node_memory_used, "MEM"),
    "load": ("Load Average", PROXMOX_ITEM_PATTERNS.node_load_average, "LOAD"),
    "iowait": ("CPU IOWait", PROXMOX_ITEM_PATTERNS.node_io_wait, "IOWAIT"),
}

REQUIRED_SVG_FIELDS = ("ds.0.itemids.0", "ds.0.hosts.0", "ds.0.items.0")


def _field(name: str, field_type: int, value: Any) -> WidgetField:
    return {"type": field_type, "name": name, "value": str(value)}


def create_svg_graph_dataset_fields(
    dataset_index: int, host_name: str, item_name: str, color_palette: int = 0
) -> List[WidgetField]:
    """
    Build the fields of one svggraph data set.

    Args:
        dataset_index: Index of the data set (0, 1, 2, ...)
        host_name: Zabbix host name
        item_name: Zabbix item name
        color_palette: Palette index

    Returns:
        Widget fields for the data set
    """
    return [
        _field(f"ds.{dataset_index}.hosts.0", FIELD_TYPE_STRING, host_name),
        _field(f"ds.{dataset_index}.items.0", FIELD_TYPE_STRING, item_name),
        _field(f"ds.{dataset_index}.color_palette", FIELD_TYPE_INTEGER, color_palette),
    ]


def create_svg_graph_widget(
    name: str,
    x: int,
    y: int,
    width: int,
    height: int,
    datasets: Sequence[Dict[str, Any]],
    reference: Optional[str] = None,
) -> Widget:
    """
    Build a complete svggraph widget.

    Each data set is a mapping with ``host_name``, ``item_name`` and an
    optional ``color_palette`` (defaults to the data set index).
    """
    fields: List[WidgetField] = [_field("righty", FIELD_TYPE_INTEGER, 0)]
    if reference:
        fields.append(_field("reference", FIELD_TYPE_STRING, reference))

    for index, dataset in enumerate(datasets):
        palette = dataset.get("color_palette")
        fields.extend(
            create_svg_graph_dataset_fields(
                index,
                dataset["host_name"],
                dataset["item_name"],
                index if palette is None else palette,
            )
        )

    return {
        "type": SVG_GRAPH_WIDGET,
        "name": name,
        "x": x,
        "y": y,
        "width": width,
        "height": height,
        "fields": fields,
    }


def _reference(node: str) -> str:
    return node.upper()[:5]


def create_proxmox_node_dashboard(node_name: str, host_name: str = "proxmox") -> List[Widget]:
    """Four-widget layout (CPU, memory, load, IO wait) for one Proxmox node."""
    return create_proxmox_widgets(node_name, host_name, ["cpu", "memory", "load", "iowait"])


def create_proxmox_widgets(
    node_name: str, host_name: str, widget_types: Iterable[str], y_offset: int = 0
) -> List[Widget]:
    """
    Build per-node widgets of the given types, two per row.

    Raises:
        ValueError: If a widget type is unknown
    """
    widgets = []
    half = GRID_WIDTH // 2
    for position, widget_type in enumerate(widget_types):
        if widget_type not in PROXMOX_WIDGET_TYPES:
            raise ValueError(
                f"Unknown widget type '{widget_type}'; "
                f"expected one of {sorted(PROXMOX_WIDGET_TYPES)}"
            )
        title, item_name, reference = PROXMOX_WIDGET_TYPES[widget_type]
        if widget_type in ("cpu", "memory"):
            reference = _reference(node_name)
        widgets.append(
            create_svg_graph_widget(
                f"{title} - Node [{node_name}]",
                (position % 2) * half,
                y_offset + (position // 2) * DEFAULT_WIDGET_HEIGHT,
                half,
                DEFAULT_WIDGET_HEIGHT,
                [{"host_name": host_name, "item_name": item_name(node_name)}],
                reference,
            )
        )
    return widgets


def create_proxmox_dual_node_dashboard(
    node1_name: str, node2_name: str, host_name: str = "proxmox"
) -> List[Widget]:
    """Comparison layout plotting two Proxmox nodes on shared graphs."""

    def datasets(pattern: Any) -> List[Dict[str, Any]]:
        return [
            {"host_name": host_name, "item_name": pattern(node1_name), "color_palette": 0},
            {"host_name": host_name, "item_name": pattern(node2_name), "color_palette": 1},
        ]

    return [
        create_svg_graph_widget(
            "CPU Usage - Nodes", 0, 0, 24, 5,
            datasets(PROXMOX_ITEM_PATTERNS.node_cpu_usage), "CPU",
        ),
        create_svg_graph_widget(
            "Memory Used - Nodes", 0, 5, 24, 5,
            datasets(PROXMOX_ITEM_PATTERNS.node_memory_used), "MEM",
        ),
        create_svg_graph_widget(
            "Load Average - Nodes", 0, 10, 12, 5,
            datasets(PROXMOX_ITEM_PATTERNS.node_load_average), "LOAD",
        ),
        create_svg_graph_widget(
            "CPU IOWait - Nodes", 12, 10, 12, 5,
            datasets(PROXMOX_ITEM_PATTERNS.node_io_wait), "IOWAIT",
        ),
    ]


def create_complete_svg_widget(
    item_id: str,
    host_name: str,
    item_name: str,
    widget_name: str,
    color: str,
    x: int,
    y: int,
    width: int,
    height: int,
) -> Widget:
    """
    Build an svggraph widget pinned to a single item id.

    The item id, host pattern and item pattern are all required by the
    frontend; color, line type and width are visual settings.
    """
    return {
        "type": SVG_GRAPH_WIDGET,
        "name": widget_name,
        "x": x,
        "y": y,
        "width": width,
        "height": height,
        "view_mode": 0,
        "fields": [
            _field("ds.0.itemids.0", FIELD_TYPE_ITEM, item_id),
            _field("ds.0.hosts.0", FIELD_TYPE_STRING, host_name),
            _field("ds.0.items.0", FIELD_TYPE_STRING, item_name),
            _field("ds.0.color", FIELD_TYPE_STRING, color),
            _field("ds.0.type", FIELD_TYPE_INTEGER, 0),
            _field("ds.0.width", FIELD_TYPE_INTEGER, 2),
        ],
    }


def validate_svg_widget(widget: Widget) -> List[str]:
    """Return the required svggraph fields missing from a widget (empty when valid)."""
    present = {field.get("name") for field in widget.get("fields", [])}
    return [name for name in REQUIRED_SVG_FIELDS if name not in present]


def iops_item_name(device: str, direction: str) -> str:
    return f"{device}: {direction.capitalize()} IOPS"


def create_iops_widgets(
    host_names: Sequence[str],
    devices: Sequence[str],
    time_period: str = "1h",
) -> List[Widget]:
    """One read/write IOPS graph per host and device, two per row."""
    widgets = []
    half = GRID_WIDTH // 2
    position = 0
    for host_name in host_names:
        for device in devices:
            widget = create_svg_graph_widget(
                f"IOPS {device} - {host_name}",
                (position % 2) * half,
                (position // 2) * DEFAULT_WIDGET_HEIGHT,
                half,
                DEFAULT_WIDGET_HEIGHT,
                [
                    {"host_name": host_name, "item_name": iops_item_name(device, "read")},
                    {"host_name": host_name, "item_name": iops_item_name(device, "write")},
                ],
            )
            widget["fields"].extend(
                [
                    _field("time_period.from", FIELD_TYPE_STRING, f"now-{time_period}"),
                    _field("time_period.to", FIELD_TYPE_STRING, "now"),
                ]
            )
            widgets.append(widget)
            position += 1
    return widgets


def next_free_row(widgets: Iterable[Dict[str, Any]]) -> int:
    """First grid row below every existing widget."""
    bottom = 0
    for widget in widgets:
        bottom = max(bottom, int(widget.get("y", 0)) + int(widget.get("height", 0)))
    return bottom
