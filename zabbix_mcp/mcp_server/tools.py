"""
MCP Server Tools
================

Tool implementations for the Zabbix MCP server.
Each handler receives the shared tool context and its validated parameters
and returns a JSON-serialisable result.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from zabbix_mcp.config.logging import get_logger
from zabbix_mcp.core import dashboards
from zabbix_mcp.core.zabbix import ZabbixClient, ZabbixError
from zabbix_mcp.models import schemas
from zabbix_mcp.models.schemas import ToolParams, ZabbixGetParams

logger = get_logger(__name__)

# vfs.dev.read[sda,ops], vfs.dev.write[nvme0n1,sps], ...
DISK_DEVICE_KEY = re.compile(r"^vfs\.dev\.[a-z_.]+\[\s*\"?([^,\]\"]+)\"?")

DEFAULT_IOPS_DASHBOARD_DEVICES = ["sda", "sdb"]

# Zabbix agent (active); needs no host interface
ITEM_TYPE_ZABBIX_ACTIVE = 7
VALUE_TYPE_FLOAT = 0


class ToolName(str, Enum):
    """Every tool the server exposes."""

    HOST_GET = "host_get"
    HOST_CREATE = "host_create"
    HOSTGROUP_GET = "hostgroup_get"
    ITEM_GET = "item_get"
    ITEM_CREATE = "item_create"
    ITEM_DELETE = "item_delete"
    TRIGGER_GET = "trigger_get"
    PROBLEM_GET = "problem_get"
    HISTORY_GET = "history_get"
    DASHBOARD_GET = "dashboard_get"
    DASHBOARD_CREATE = "dashboard_create"
    DASHBOARD_UPDATE = "dashboard_update"
    DASHBOARD_DELETE = "dashboard_delete"
    API_VERSION_GET = "api_version_get"
    API_CONNECTIVITY_CHECK = "api_connectivity_check"
    VERIFY_CONNECTIVITY = "verify_connectivity"
    PROXMOX_DASHBOARD_CREATE_SINGLE = "proxmox_dashboard_create_single"
    PROXMOX_DASHBOARD_CREATE_DUAL = "proxmox_dashboard_create_dual"
    PROXMOX_DASHBOARD_ADD_WIDGETS = "proxmox_dashboard_add_widgets"
    PROXMOX_HOSTS_ANALYZE = "proxmox_hosts_analyze"
    IOPS_ITEM_CREATE = "iops_item_create"
    DISK_DEVICES_DISCOVER = "disk_devices_discover"
    IOPS_DASHBOARD_CREATE = "iops_dashboard_create"


@dataclass
class ToolContext:
    """Collaborators shared by every tool invocation."""

    client: ZabbixClient
    base_url: str
    read_only: bool = True


ToolHandler = Callable[[ToolContext, Any], Awaitable[Any]]


@dataclass(frozen=True)
class ToolSpec:
    """A tool: its name, description, parameter model and handler."""

    name: ToolName
    description: str
    params_model: Type[ToolParams]
    handler: ToolHandler
    mutating: bool = False


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _api_params(params: ToolParams) -> Dict[str, Any]:
    """Parameters as sent upstream: unset options omitted, pass-through options kept."""
    return params.model_dump(exclude_none=True)


def _truncate(result: Any, limit: Optional[int]) -> Any:
    if limit is not None and isinstance(result, list):
        return result[:limit]
    return result


def _get_tool(verb: str) -> ToolHandler:
    """Handler for a plain ``*.get`` pass-through to the client verb ``verb``."""

    async def handler(ctx: ToolContext, params: ZabbixGetParams) -> Any:
        result = await getattr(ctx.client, verb)(_api_params(params))
        return _truncate(result, params.limit)

    handler.__name__ = verb
    return handler


# Create / update / delete

async def host_create(ctx: ToolContext, params: schemas.HostCreateParams) -> Any:
    return await ctx.client.host_create(_api_params(params))


async def item_create(ctx: ToolContext, params: schemas.ItemCreateParams) -> Any:
    return await ctx.client.item_create(_api_params(params))


async def item_delete(ctx: ToolContext, params: schemas.ItemDeleteParams) -> Any:
    return await ctx.client.item_delete(params.itemids)


async def dashboard_create(ctx: ToolContext, params: schemas.DashboardCreateParams) -> Any:
    payload = _api_params(params)
    # dashboard.create requires at least one page
    payload.setdefault("pages", [{"widgets": []}])
    return await ctx.client.dashboard_create(payload)


async def dashboard_update(ctx: ToolContext, params: schemas.DashboardUpdateParams) -> Any:
    return await ctx.client.dashboard_update(_api_params(params))


async def dashboard_delete(ctx: ToolContext, params: schemas.DashboardDeleteParams) -> Any:
    return await ctx.client.dashboard_delete(params.dashboardids)


# System

async def api_version_get(ctx: ToolContext, params: schemas.NoParams) -> Any:
    return await ctx.client.apiinfo_version()


async def api_connectivity_check(ctx: ToolContext, params: schemas.NoParams) -> Dict[str, Any]:
    return {
        "connected": ctx.client.is_authenticated(),
        "url": ctx.base_url,
        "timestamp": _now(),
        "read_only": ctx.read_only,
    }


async def verify_connectivity(ctx: ToolContext, params: schemas.NoParams) -> Dict[str, Any]:
    """Check reachability, API version and authentication in one go."""
    report = await ctx.client.verify_connectivity(test_auth=True)
    return {
        "connected": report["connected"],
        "authenticated": report.get("authenticated", False),
        "auth_method": report.get("auth_method"),
        "version": report["version"],
        "error": report.get("error"),
        "timestamp": _now(),
        "url": ctx.base_url,
        "read_only": ctx.read_only,
    }


# Proxmox

async def proxmox_dashboard_create_single(
    ctx: ToolContext, params: schemas.ProxmoxDashboardSingleParams
) -> Dict[str, Any]:
    host_name = params.host_name or params.hostname
    name = params.dashboard_name or f"Proxmox - {params.hostname}"
    widgets = dashboards.create_proxmox_node_dashboard(params.hostname, host_name)

    result = await ctx.client.dashboard_create({"name": name, "pages": [{"widgets": widgets}]})
    logger.info("Proxmox dashboard created", dashboard=name, node=params.hostname)
    return {
        "dashboard_name": name,
        "dashboardids": result.get("dashboardids", []) if isinstance(result, dict) else [],
        "hostname": params.hostname,
        "widgets": widgets,
    }


async def proxmox_dashboard_create_dual(
    ctx: ToolContext, params: schemas.ProxmoxDashboardDualParams
) -> Dict[str, Any]:
    name = params.dashboard_name or f"Dual Proxmox - {params.hostname1} & {params.hostname2}"
    widgets = dashboards.create_proxmox_dual_node_dashboard(
        params.hostname1, params.hostname2, params.host_name
    )

    result = await ctx.client.dashboard_create({"name": name, "pages": [{"widgets": widgets}]})
    return {
        "dashboard_name": name,
        "dashboardids": result.get("dashboardids", []) if isinstance(result, dict) else [],
        "nodes": [params.hostname1, params.hostname2],
        "widgets": widgets,
    }


async def proxmox_dashboard_add_widgets(
    ctx: ToolContext, params: schemas.ProxmoxAddWidgetsParams
) -> Dict[str, Any]:
    """Append node widgets below the existing widgets of a dashboard's first page."""
    found = await ctx.client.dashboard_get(
        {"dashboardids": [params.dashboard_id], "selectPages": "extend"}
    )
    if not found:
        raise ZabbixError(f"Dashboard {params.dashboard_id} not found")

    pages: List[Dict[str, Any]] = found[0].get("pages") or [{"widgets": []}]
    first_page = pages[0]
    existing = first_page.get("widgets") or []

    widgets = dashboards.create_proxmox_widgets(
        params.hostname,
        params.host_name or params.hostname,
        params.widget_types,
        y_offset=dashboards.next_free_row(existing),
    )
    first_page["widgets"] = list(existing) + widgets

    result = await ctx.client.dashboard_update(
        {"dashboardid": params.dashboard_id, "pages": pages}
    )
    return {
        "dashboard_id": params.dashboard_id,
        "hostname": params.hostname,
        "widget_types": list(params.widget_types),
        "widgets_added": len(widgets),
        "result": result,
    }


async def proxmox_hosts_analyze(
    ctx: ToolContext, params: schemas.ProxmoxHostsAnalyzeParams
) -> Dict[str, Any]:
    hosts = await ctx.client.host_get(
        {"output": "extend", "search": {"name": params.hostname_pattern}}
    )
    hosts = hosts if isinstance(hosts, list) else [hosts]
    return {
        "pattern": params.hostname_pattern,
        "hosts_found": len(hosts),
        "hosts": [
            {"hostid": h.get("hostid"), "name": h.get("name"), "status": h.get("status")}
            for h in hosts
        ],
    }


# Disk IO

async def _find_hosts(
    ctx: ToolContext, hostname: Optional[str], pattern: Optional[str]
) -> List[Dict[str, Any]]:
    if hostname:
        query: Dict[str, Any] = {"output": ["hostid", "host", "name"], "filter": {"host": hostname}}
    else:
        query = {"output": ["hostid", "host", "name"], "search": {"name": pattern or "Proxmox"}}
    hosts = await ctx.client.host_get(query)
    return hosts if isinstance(hosts, list) else []


def parse_disk_devices(items: List[Dict[str, Any]]) -> List[str]:
    """Device names referenced by ``vfs.dev.*`` item keys, in first-seen order."""
    devices: List[str] = []
    for item in items:
        match = DISK_DEVICE_KEY.match(item.get("key_", ""))
        if match:
            device = match.group(1).strip()
            if device and device not in devices:
                devices.append(device)
    return devices


async def _discover_devices(ctx: ToolContext, hostids: List[str]) -> List[str]:
    if not hostids:
        return []
    items = await ctx.client.item_get(
        {
            "output": ["itemid", "hostid", "key_"],
            "hostids": hostids,
            "search": {"key_": "vfs.dev."},
            "startSearch": True,
        }
    )
    return parse_disk_devices(items if isinstance(items, list) else [])


async def disk_devices_discover(
    ctx: ToolContext, params: schemas.DiskDevicesDiscoverParams
) -> Dict[str, Any]:
    hosts = await _find_hosts(ctx, params.hostname, params.hostname_pattern)
    devices = await _discover_devices(ctx, [h["hostid"] for h in hosts if "hostid" in h])
    return {
        "search_criteria": {"hostname": params.hostname, "pattern": params.hostname_pattern},
        "hosts_found": len(hosts),
        "hosts": [h.get("host") or h.get("name") for h in hosts],
        "discovered_devices": devices,
    }


def build_iops_items(hostid: str, devices: List[str], delay: str) -> List[Dict[str, Any]]:
    """Read, write and total IOPS items for every device."""
    items = []
    for device in devices:
        for direction in ("read", "write"):
            items.append(
                {
                    "hostid": hostid,
                    "name": dashboards.iops_item_name(device, direction),
                    "key_": f"vfs.dev.{direction}[{device},ops]",
                    "type": ITEM_TYPE_ZABBIX_ACTIVE,
                    "value_type": VALUE_TYPE_FLOAT,
                    "units": "ops",
                    "delay": delay,
                }
            )
        items.append(
            {
                "hostid": hostid,
                "name": dashboards.iops_item_name(device, "total"),
                "key_": f"vfs.dev.iops[{device},total]",
                "type": 15,  # calculated
                "value_type": VALUE_TYPE_FLOAT,
                "units": "ops",
                "delay": delay,
                "params": (
                    f"last(//vfs.dev.read[{device},ops])+last(//vfs.dev.write[{device},ops])"
                ),
            }
        )
    return items


async def iops_item_create(ctx: ToolContext, params: schemas.IopsItemCreateParams) -> Dict[str, Any]:
    hosts = await _find_hosts(ctx, params.hostname, None)
    if not hosts:
        raise ZabbixError(f"Host '{params.hostname}' not found")

    items = build_iops_items(hosts[0]["hostid"], params.devices, params.delay)
    result = await ctx.client.item_create(items)
    logger.info("IOPS items created", hostname=params.hostname, count=len(items))
    return {
        "hostname": params.hostname,
        "devices": params.devices,
        "items_created": len(items),
        "itemids": result.get("itemids", []) if isinstance(result, dict) else [],
    }


async def iops_dashboard_create(
    ctx: ToolContext, params: schemas.IopsDashboardCreateParams
) -> Dict[str, Any]:
    hosts = await _find_hosts(ctx, params.hostname, params.hostname_pattern)
    if not hosts:
        raise ZabbixError("No hosts matched the given hostname or pattern")

    host_names = [h.get("host") or h.get("name") for h in hosts]
    devices = params.devices
    if not devices:
        devices = await _discover_devices(ctx, [h["hostid"] for h in hosts])
    if not devices:
        devices = DEFAULT_IOPS_DASHBOARD_DEVICES

    widgets = dashboards.create_iops_widgets(host_names, devices, params.time_period)
    result = await ctx.client.dashboard_create(
        {"name": params.name, "pages": [{"widgets": widgets}]}
    )
    logger.info("IOPS dashboard created", dashboard=params.name, widgets=len(widgets))
    return {
        "dashboard_name": params.name,
        "dashboardids": result.get("dashboardids", []) if isinstance(result, dict) else [],
        "hosts": host_names,
        "devices": devices,
        "widgets_created": len(widgets),
    }


TOOL_SPECS: List[ToolSpec] = [
    # Hosts
    ToolSpec(ToolName.HOST_GET, "Get Zabbix hosts with optional filters",
             schemas.HostGetParams, _get_tool("host_get")),
    ToolSpec(ToolName.HOST_CREATE, "Create a new Zabbix host (write mode only)",
             schemas.HostCreateParams, host_create, mutating=True),
    ToolSpec(ToolName.HOSTGROUP_GET, "Get Zabbix host groups",
             schemas.HostgroupGetParams, _get_tool("hostgroup_get")),
    # Items
    ToolSpec(ToolName.ITEM_GET, "Get Zabbix items with optional filters",
             schemas.ItemGetParams, _get_tool("item_get")),
    ToolSpec(ToolName.ITEM_CREATE, "Create a new Zabbix item (write mode only)",
             schemas.ItemCreateParams, item_create, mutating=True),
    ToolSpec(ToolName.ITEM_DELETE, "Delete Zabbix items (write mode only)",
             schemas.ItemDeleteParams, item_delete, mutating=True),
    # Monitoring
    ToolSpec(ToolName.TRIGGER_GET, "Get Zabbix triggers",
             schemas.TriggerGetParams, _get_tool("trigger_get")),
    ToolSpec(ToolName.PROBLEM_GET, "Get current Zabbix problems",
             schemas.ProblemGetParams, _get_tool("problem_get")),
    ToolSpec(ToolName.HISTORY_GET, "Get item history data",
             schemas.HistoryGetParams, _get_tool("history_get")),
    # Dashboards
    ToolSpec(ToolName.DASHBOARD_GET, "Get Zabbix dashboards",
             schemas.DashboardGetParams, _get_tool("dashboard_get")),
    ToolSpec(ToolName.DASHBOARD_CREATE, "Create a new Zabbix dashboard (write mode only)",
             schemas.DashboardCreateParams, dashboard_create, mutating=True),
    ToolSpec(ToolName.DASHBOARD_UPDATE, "Update an existing Zabbix dashboard (write mode only)",
             schemas.DashboardUpdateParams, dashboard_update, mutating=True),
    ToolSpec(ToolName.DASHBOARD_DELETE, "Delete Zabbix dashboards (write mode only)",
             schemas.DashboardDeleteParams, dashboard_delete, mutating=True),
    # System
    ToolSpec(ToolName.API_VERSION_GET, "Get Zabbix API version information",
             schemas.NoParams, api_version_get),
    ToolSpec(ToolName.API_CONNECTIVITY_CHECK, "Report whether the server holds a Zabbix session",
             schemas.NoParams, api_connectivity_check),
    ToolSpec(ToolName.VERIFY_CONNECTIVITY,
             "Comprehensive Zabbix API connectivity and authentication verification",
             schemas.NoParams, verify_connectivity),
    # Proxmox
    ToolSpec(ToolName.PROXMOX_DASHBOARD_CREATE_SINGLE,
             "Create a comprehensive Proxmox dashboard for a single node",
             schemas.ProxmoxDashboardSingleParams, proxmox_dashboard_create_single, mutating=True),
    ToolSpec(ToolName.PROXMOX_DASHBOARD_CREATE_DUAL,
             "Create a comprehensive dashboard for dual Proxmox nodes",
             schemas.ProxmoxDashboardDualParams, proxmox_dashboard_create_dual, mutating=True),
    ToolSpec(ToolName.PROXMOX_DASHBOARD_ADD_WIDGETS,
             "Add monitoring widgets to existing Proxmox dashboard",
             schemas.ProxmoxAddWidgetsParams, proxmox_dashboard_add_widgets, mutating=True),
    ToolSpec(ToolName.PROXMOX_HOSTS_ANALYZE, "Analyze Proxmox hosts and their monitoring items",
             schemas.ProxmoxHostsAnalyzeParams, proxmox_hosts_analyze),
    # Disk IO
    ToolSpec(ToolName.IOPS_ITEM_CREATE, "Create comprehensive IOPS monitoring items for a host",
             schemas.IopsItemCreateParams, iops_item_create, mutating=True),
    ToolSpec(ToolName.DISK_DEVICES_DISCOVER, "Discover available disk devices on monitored hosts",
             schemas.DiskDevicesDiscoverParams, disk_devices_discover),
    ToolSpec(ToolName.IOPS_DASHBOARD_CREATE, "Create comprehensive IOPS monitoring dashboard",
             schemas.IopsDashboardCreateParams, iops_dashboard_create, mutating=True),
]
