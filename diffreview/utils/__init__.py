"""Shared utilities for diffreview."""
