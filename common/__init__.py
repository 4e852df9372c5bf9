"""Shared configuration, logging, errors and models for the deduplication job."""
