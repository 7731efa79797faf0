"""Tests for glbc.reconciler.ingress."""
