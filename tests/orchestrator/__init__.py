"""Tests for glbc.orchestrator."""
