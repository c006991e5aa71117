"""Modelos y entidades del dominio.

Aquí viven las estructuras de datos puras y estrictas (Pydantic v2), los
eventos de tokens y la taxonomía de errores. El dominio no conoce HTTP ni CLI.
"""
