from abc import ABC, abstractmethod

from kyc_case_service.core.models import SessionContext


class AbstractIdentityProvider(ABC):
    @abstractmethod
    async def validate_token(self, token: str) -> SessionContext:
        """
        Validates a bearer token issued by the identity provider.

        Args:
            token: The raw bearer token presented by the caller.

        Returns:
            The SessionContext the token belongs to. Raises AuthenticationError
            when the token is missing, expired or unknown.
        """
        pass
