"""
Core Business Logic
===================

Upstream Zabbix API access and dashboard widget construction.
"""
