"""
Services for the property aggregate.

Import modules directly, e.g. `from app.services.property_service import PropertyService`.
"""
