"""
Test Suite
==========

Test suite mirroring the zabbix_mcp package structure.

Test Categories:
- unit: Unit tests for individual components
- integration: Transport and HTTP routes driven end to end
"""
