"""Marketplace reservation, negotiation and hiring backend."""
