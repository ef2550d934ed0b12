"""
Service layer: business logic between the API and the repositories.
"""
