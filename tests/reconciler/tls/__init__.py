"""Tests for glbc.reconciler.tls."""
