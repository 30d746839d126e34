"""Zodial (hedge.wtf) lending program accounts."""
