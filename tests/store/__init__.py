"""Tests for glbc.store."""
