"""
Pydantic Models and Schemas
===========================

Tool parameter records, health and error response models.
Tool input schemas are generated from the parameter models below.
"""

from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Union, Literal, Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _coerce_id_list(value: Any) -> Any:
    """Accept a single id where a list of ids is expected."""
    if isinstance(value, (str, int)):
        return [str(value)]
    if isinstance(value, (list, tuple)):
        return [str(v) if isinstance(v, int) else v for v in value]
    return value


def _coerce_id(value: Any) -> Any:
    return str(value) if isinstance(value, int) and not isinstance(value, bool) else value


Id = Annotated[str, BeforeValidator(_coerce_id)]
IdList = Annotated[List[str], BeforeValidator(_coerce_id_list)]
Output = Union[str, List[str]]
Timestamp = Union[int, str]


# Base Models
class ToolParams(BaseModel):
    """Base model for tool arguments."""

    model_config = ConfigDict(extra="ignore")


class ZabbixGetParams(ToolParams):
    """
    Common options of Zabbix ``*.get`` methods.

    Options not declared here are passed through to the API unchanged.
    """

    model_config = ConfigDict(extra="allow")

    output: Optional[Output] = Field(None, description="Output format (extend, count, or field list)")
    search: Optional[Dict[str, Any]] = Field(None, description="Search criteria")
    filter: Optional[Dict[str, Any]] = Field(None, description="Filter criteria")
    limit: Optional[int] = Field(None, ge=1, description="Limit number of results")
    sortfield: Optional[Output] = Field(None, description="Fields to sort by")
    sortorder: Optional[Literal["ASC", "DESC"]] = Field(None, description="Sort order")


class NoParams(ToolParams):
    """Tools that take no arguments."""


# Host Models
class HostGetParams(ZabbixGetParams):
    hostids: Optional[IdList] = Field(None, description="Host IDs to filter")
    groupids: Optional[IdList] = Field(None, description="Group IDs to filter")


class HostCreateParams(ToolParams):
    model_config = ConfigDict(extra="allow")

    host: str = Field(..., min_length=1, description="Host name")
    groups: List[Dict[str, Any]] = Field(..., min_length=1, description="Host groups")
    interfaces: List[Dict[str, Any]] = Field(..., description="Host interfaces")
    templates: Optional[List[Dict[str, Any]]] = Field(None, description="Templates to link")
    macros: Optional[List[Dict[str, Any]]] = Field(None, description="Host macros")


class HostgroupGetParams(ZabbixGetParams):
    groupids: Optional[IdList] = Field(None, description="Group IDs to filter")


# Item Models
class ItemGetParams(ZabbixGetParams):
    hostids: Optional[IdList] = Field(None, description="Host IDs to filter")
    itemids: Optional[IdList] = Field(None, description="Item IDs to filter")


class ItemCreateParams(ToolParams):
    model_config = ConfigDict(extra="allow")

    hostid: Id = Field(..., description="Host ID")
    name: str = Field(..., min_length=1, description="Item name")
    key_: str = Field(..., min_length=1, description="Item key")
    type: int = Field(..., ge=0, description="Item type")
    value_type: int = Field(..., ge=0, le=5, description="Value type")
    delay: Optional[str] = Field(None, description="Update interval")
    description: Optional[str] = Field(None, description="Item description")


class ItemDeleteParams(ToolParams):
    itemids: IdList = Field(..., min_length=1, description="Item IDs to delete")


# Monitoring Models
class TriggerGetParams(ZabbixGetParams):
    hostids: Optional[IdList] = Field(None, description="Host IDs to filter")
    triggerids: Optional[IdList] = Field(None, description="Trigger IDs to filter")


class ProblemGetParams(ZabbixGetParams):
    hostids: Optional[IdList] = Field(None, description="Host IDs to filter")
    recent: Optional[bool] = Field(None, description="Show recent problems only")
    severities: Optional[List[int]] = Field(None, description="Severity levels to filter")


class HistoryGetParams(ZabbixGetParams):
    itemids: IdList = Field(..., min_length=1, description="Item IDs")
    history: Optional[int] = Field(
        None, ge=0, le=5, description="History type (0=float, 1=char, 2=log, 3=uint, 4=text)"
    )
    time_from: Optional[Timestamp] = Field(None, description="Start time (timestamp)")
    time_till: Optional[Timestamp] = Field(None, description="End time (timestamp)")


# Dashboard Models
class DashboardGetParams(ZabbixGetParams):
    dashboardids: Optional[IdList] = Field(None, description="Dashboard IDs")


class DashboardCreateParams(ToolParams):
    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1, description="Dashboard name")
    display_period: Optional[int] = Field(None, description="Display period in seconds")
    auto_start: Optional[Literal[0, 1]] = Field(None, description="Auto start (0 or 1)")
    pages: Optional[List[Dict[str, Any]]] = Field(None, description="Dashboard pages")


class DashboardUpdateParams(ToolParams):
    model_config = ConfigDict(extra="allow")

    dashboardid: Id = Field(..., description="Dashboard ID to update")
    name: Optional[str] = Field(None, description="Dashboard name")
    display_period: Optional[int] = Field(None, description="Display period in seconds")
    auto_start: Optional[Literal[0, 1]] = Field(None, description="Auto start (0 or 1)")
    pages: Optional[List[Dict[str, Any]]] = Field(None, description="Dashboard pages")


class DashboardDeleteParams(ToolParams):
    dashboardids: IdList = Field(..., min_length=1, description="Dashboard IDs to delete")


# Proxmox Models
ProxmoxWidgetType = Literal["cpu", "memory", "load", "iowait"]


class ProxmoxDashboardSingleParams(ToolParams):
    hostname: str = Field(..., min_length=1, description="Proxmox node to monitor")
    dashboard_name: Optional[str] = Field(None, description="Custom dashboard name")
    host_name: Optional[str] = Field(
        None, description="Zabbix host carrying the node items (defaults to hostname)"
    )


class ProxmoxDashboardDualParams(ToolParams):
    hostname1: str = Field(..., min_length=1, description="First Proxmox node")
    hostname2: str = Field(..., min_length=1, description="Second Proxmox node")
    dashboard_name: Optional[str] = Field(None, description="Custom dashboard name")
    host_name: str = Field("proxmox", description="Zabbix host carrying the node items")


class ProxmoxAddWidgetsParams(ToolParams):
    dashboard_id: Id = Field(..., description="Target dashboard ID")
    hostname: str = Field(..., min_length=1, description="Proxmox node to add widgets for")
    widget_types: List[ProxmoxWidgetType] = Field(
        default_factory=lambda: ["cpu", "memory", "load", "iowait"],
        min_length=1,
        description="Widget types to add",
    )
    host_name: Optional[str] = Field(
        None, description="Zabbix host carrying the node items (defaults to hostname)"
    )


class ProxmoxHostsAnalyzeParams(ToolParams):
    hostname_pattern: str = Field("Proxmox", description="Hostname pattern to match")


# IOPS Models
class IopsItemCreateParams(ToolParams):
    hostname: str = Field(..., min_length=1, description="Target hostname for IOPS monitoring")
    devices: List[str] = Field(
        default_factory=lambda: ["sda", "sdb", "nvme0n1"],
        min_length=1,
        description='Disk devices to monitor (e.g., ["sda", "sdb"])',
    )
    delay: str = Field("1m", description="Update interval of the created items")


class DiskDevicesDiscoverParams(ToolParams):
    hostname: Optional[str] = Field(None, description="Specific hostname to analyze")
    hostname_pattern: str = Field("Proxmox", description="Hostname pattern to match")


class IopsDashboardCreateParams(ToolParams):
    name: str = Field(..., min_length=1, description="Dashboard name")
    hostname: Optional[str] = Field(None, description="Specific hostname to monitor")
    hostname_pattern: Optional[str] = Field(None, description="Hostname pattern for multiple hosts")
    devices: Optional[List[str]] = Field(None, description="Specific devices to monitor")
    time_period: str = Field(
        "1h", pattern=r"^\d+[smhdwMy]$", description="Default time period"
    )


# Health Check Models
class HealthStatus(BaseModel):
    """Health check status."""

    status: Literal["ok", "degraded"] = Field(..., description="Overall status")
    timestamp: datetime = Field(default_factory=_utcnow, description="Check timestamp")
    active_sessions: int = Field(0, ge=0, description="Number of open sessions")
    zabbix_connected: bool = Field(..., description="Whether the upstream client holds a token")
    uptime: str = Field(..., description="Process uptime as HH:MM:SS")
    uptime_seconds: float = Field(..., ge=0, description="Process uptime in seconds")
    version: str = Field(..., description="Application version")
    read_only: bool = Field(..., description="Whether mutating tools are rejected")
    tools_count: int = Field(..., ge=0, description="Number of registered tools")


# Error Models
class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(default_factory=_utcnow, description="Error timestamp")
    request_id: Optional[str] = Field(None, description="Request identifier for tracking")
