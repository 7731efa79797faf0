"""Tests for glbc.reconciler."""
