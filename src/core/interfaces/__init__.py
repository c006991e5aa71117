"""Interfaces/abstracciones del Core.

Contratos (Protocol) que implementan los adaptadores concretos: clientes de
custodio y colaboradores externos (estado, requests, notificaciones, UI).
"""
