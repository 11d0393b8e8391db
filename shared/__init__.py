# Shared module for modular monolith architecture
#
# This module contains common utilities shared across all modules:
# - exceptions.py: Base exceptions and custom exception handler
# - permissions.py: Common DRF permission classes
# - utils.py: Utility functions
