"""Tests for glbc.dns."""
