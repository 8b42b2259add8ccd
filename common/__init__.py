"""
Shared configuration and unit helpers
"""
