"""Tests - Constraint network, gadget and reference test suite."""
