from dataclasses import dataclass
from typing import Optional


@dataclass
class SessionState:
    uid: Optional[str] = None
    email: Optional[str] = None
    jwt: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.uid)
