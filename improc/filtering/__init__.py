"""Sliding-window filters."""
