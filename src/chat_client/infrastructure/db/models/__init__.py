"""Import all models so Base.metadata.create_all() sees them."""
from chat_client.infrastructure.db.models.credential import CredentialEntryModel

__all__ = [
    "CredentialEntryModel",
]
