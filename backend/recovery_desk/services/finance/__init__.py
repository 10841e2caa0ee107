"""Allocation and balance arithmetic for recovery certificates."""
