"""Adapters implementing the execution port."""
