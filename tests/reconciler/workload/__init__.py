"""Tests for glbc.reconciler.workload."""
