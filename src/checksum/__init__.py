# src/checksum/__init__.py — v1
