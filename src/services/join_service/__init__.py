# src/services/join_service/__init__.py
"""
Join Service: HTTP API движка заявок.
"""
