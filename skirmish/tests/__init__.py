"""Test suite for skirmish."""
