"""Shared configuration, logging and data models."""
