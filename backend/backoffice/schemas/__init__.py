"""Pydantic input models for service operations."""
