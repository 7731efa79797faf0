"""Tests for glbc.reconciler.dns."""
