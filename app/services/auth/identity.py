import os
import asyncio
from abc import ABC, abstractmethod
from typing import Optional
from google.oauth2 import id_token
from google.auth import exceptions as google_exceptions
from google.auth.transport import requests
from dotenv import load_dotenv

from app.utils.errors import Unauthenticated, UpstreamFailure

# Load environment variables
load_dotenv()


class BaseIdentityVerifier(ABC):
    """
    Turns a bearer credential into a verified principal email.
    Implementations raise Unauthenticated for bad credentials and
    UpstreamFailure when the provider cannot be reached.
    """

    @abstractmethod
    async def verify(self, token: str) -> str:
        pass

    async def close(self):
        """Release provider resources"""
        return None


class FirebaseIdentityVerifier(BaseIdentityVerifier):
    """Verifies Firebase ID tokens with google-auth"""

    def __init__(self, project_id: Optional[str] = None, timeout: Optional[float] = None):
        self.project_id = project_id or os.getenv("FIREBASE_PROJECT_ID")
        self.timeout = timeout or float(os.getenv("IDENTITY_TIMEOUT", "10"))
        self.request = requests.Request()

        if not self.project_id:
            print("[WARN] FIREBASE_PROJECT_ID not found in environment")

    def _verify_sync(self, token: str) -> dict:
        return id_token.verify_firebase_token(token, self.request, audience=self.project_id)

    async def verify(self, token: str) -> str:
        """Verify Firebase ID token and return the lower-cased email"""
        if not token or not self.project_id:
            raise Unauthenticated()

        try:
            # Certificate fetch is blocking, keep it off the event loop and bounded
            claims = await asyncio.wait_for(
                asyncio.to_thread(self._verify_sync, token),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            print("[ERROR] Identity provider timed out")
            raise UpstreamFailure("Identity provider timed out")
        except google_exceptions.TransportError as e:
            print(f"[ERROR] Identity provider unreachable: {e}")
            raise UpstreamFailure("Identity provider unreachable")
        except (ValueError, google_exceptions.GoogleAuthError) as e:
            # Invalid or expired token
            print(f"[SECURITY] Firebase token verification failed: {e}")
            raise Unauthenticated()

        email = (claims or {}).get("email")
        if not email:
            raise Unauthenticated()

        return email.strip().lower()

    async def close(self):
        self.request.session.close()
