"""Tests for glbc.tls."""
