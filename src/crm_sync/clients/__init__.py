"""Transports for the CRM REST API."""

from crm_sync.clients.base import Transport
from crm_sync.clients.http import HTTPTransport, export_collection, export_filename

__all__ = ["HTTPTransport", "Transport", "export_collection", "export_filename"]
