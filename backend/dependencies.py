"""
Dependency injection providers for FastAPI.

This module provides factory functions for creating repository and service instances,
following the Dependency Inversion Principle. Tests swap the database by
overriding get_db on the app.
"""

from sqlalchemy.orm import Session
from fastapi import Depends
from database import get_db
from repositories.user_repository import UserRepository
from services.user_service import UserService


def get_user_repository(db: Session = Depends(get_db)) -> UserRepository:
    """
    Factory function for creating UserRepository instances.

    Args:
        db: Database session (injected)

    Returns:
        UserRepository instance
    """
    return UserRepository(db)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    """
    Factory function for creating UserService instances.

    Args:
        db: Database session (injected)

    Returns:
        UserService instance
    """
    return UserService(db)
