"""Payments service for the hotel-booking demo."""

from payments_service.app import create_app

__all__ = ['create_app']
