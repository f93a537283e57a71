"""Tests for the ctm package."""
