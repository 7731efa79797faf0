"""Tests for glbc.cluster."""
