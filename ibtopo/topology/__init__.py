"""Topology view built from parsed fabric data."""