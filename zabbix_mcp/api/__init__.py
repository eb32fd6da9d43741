"""
API Package
===========

FastAPI application exposing the Zabbix tools over an SSE session transport.
"""
