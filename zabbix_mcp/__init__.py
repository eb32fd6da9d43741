"""
Zabbix MCP Server
=================

A Model Context Protocol (MCP) server exposing the Zabbix management API
(hosts, items, triggers, problems, dashboards) as callable tools over a
session-oriented Server-Sent Events transport.

This package provides:
- Streaming transport with an in-memory session table and idle-session reaper
- MCP protocol bridge (initialize, tools/list, tools/call)
- Zabbix JSON-RPC client with ordered authentication fallback
- Dashboard widget builders for Proxmox and IOPS dashboards
"""

__version__ = "1.0.4"
__author__ = "Zabbix MCP Team"
