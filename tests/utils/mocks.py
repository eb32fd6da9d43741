"""
Test Mocks
===========

Stub upstream client serving fixed Zabbix fixtures.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from zabbix_mcp.core.zabbix import ZabbixClient


HOSTS: List[Dict[str, Any]] = [
    {"hostid": "10084", "host": "Zabbix server", "name": "Zabbix server", "status": "0"},
    {"hostid": "10601", "host": "pve01", "name": "Proxmox pve01", "status": "0"},
    {"hostid": "10602", "host": "pve02", "name": "Proxmox pve02", "status": "0"},
    {"hostid": "10603", "host": "nas", "name": "Storage NAS", "status": "0"},
    {"hostid": "10604", "host": "backup", "name": "Backup host", "status": "1"},
]

ITEMS: List[Dict[str, Any]] = [
    {"itemid": "40001", "hostid": "10601", "key_": "vfs.dev.read[sda,ops]"},
    {"itemid": "40002", "hostid": "10601", "key_": "vfs.dev.write[sda,ops]"},
    {"itemid": "40003", "hostid": "10601", "key_": "vfs.dev.read[nvme0n1,ops]"},
    {"itemid": "40004", "hostid": "10602", "key_": "vfs.dev.util[sdb]"},
    {"itemid": "40005", "hostid": "10601", "key_": "system.cpu.util"},
]

API_VERSION = "7.0.0"
SESSION_TOKEN = "stub-session-token"


class StubZabbixClient(ZabbixClient):
    """
    Zabbix client answering from fixtures instead of HTTP.

    Every upstream method is recorded in ``calls``. ``failures`` maps a
    method to the exception it raises; ``delays`` maps a method to a
    sleep in seconds before answering.
    """

    def __init__(self, **kwargs: Any):
        kwargs.setdefault("url", "http://zabbix.test")
        kwargs.setdefault("user", "Admin")
        kwargs.setdefault("password", "zabbix")
        super().__init__(**kwargs)
        self.calls: List[Tuple[str, Any]] = []
        self.responses: Dict[str, Any] = {}
        self.failures: Dict[str, Exception] = {}
        self.delays: Dict[str, float] = {}
        self.dashboards: Dict[str, Dict[str, Any]] = {}

    @property
    def methods(self) -> List[str]:
        return [method for method, _ in self.calls]

    def api_methods(self) -> List[str]:
        """Recorded methods excluding login traffic."""
        return [m for m in self.methods if m not in ("apiinfo.version", "user.login")]

    async def request(self, method: str, params: Any = None) -> Any:
        self.calls.append((method, params))
        if method in self.delays:
            await asyncio.sleep(self.delays[method])
        if method in self.failures:
            raise self.failures[method]
        if method in self.responses:
            return self.responses[method]
        return self._answer(method, params)

    def _answer(self, method: str, params: Any) -> Any:
        if method == "apiinfo.version":
            return API_VERSION
        if method == "user.login":
            return SESSION_TOKEN
        if method == "user.logout":
            return True
        if method == "host.get":
            return self._hosts(params or {})
        if method == "item.get":
            hostids = set((params or {}).get("hostids") or [])
            return [i for i in ITEMS if not hostids or i["hostid"] in hostids]
        if method == "item.create":
            count = len(params) if isinstance(params, list) else 1
            return {"itemids": [str(50000 + n) for n in range(count)]}
        if method == "dashboard.create":
            dashboardid = str(100 + len(self.dashboards))
            self.dashboards[dashboardid] = dict(params, dashboardid=dashboardid)
            return {"dashboardids": [dashboardid]}
        if method == "dashboard.get":
            ids = (params or {}).get("dashboardids") or list(self.dashboards)
            return [self.dashboards[i] for i in ids if i in self.dashboards]
        if method == "dashboard.update":
            self.dashboards.setdefault(params["dashboardid"], {}).update(params)
            return {"dashboardids": [params["dashboardid"]]}
        return []

    @staticmethod
    def _hosts(params: Dict[str, Any]) -> List[Dict[str, Any]]:
        hosts = list(HOSTS)
        host_filter: Optional[str] = (params.get("filter") or {}).get("host")
        if host_filter is not None:
            hosts = [h for h in hosts if h["host"] == host_filter]
        name_search: Optional[str] = (params.get("search") or {}).get("name")
        if name_search:
            hosts = [h for h in hosts if name_search.lower() in h["name"].lower()]
        return hosts
