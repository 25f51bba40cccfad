"""Core domain logic - models, errors, normalization and orchestration."""
