"""
Database Services

Business logic layer on top of the repositories.
"""

from database.services.restaurant_ingestion import RestaurantIngestionService

__all__ = ['RestaurantIngestionService']
