"""
Station Portal Integrations Package

This package contains third-party service integrations.
"""

from .groq import (
    call_groq,
    retry_delay,
    GroqError,
    GROQ_API_URL,
    GROQ_MODEL
)

__all__ = [
    'call_groq',
    'retry_delay',
    'GroqError',
    'GROQ_API_URL',
    'GROQ_MODEL'
]
