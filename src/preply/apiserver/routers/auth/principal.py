from pydantic import BaseModel

from preply.apiserver.users.user_directory import UserRecord


class Principal(BaseModel):
    """Describes the signed-in user within the API server.

    A Principal only exists for a session whose credential verified and whose user is present in the directory.
    """

    id: str  # subject identifier assigned by the identity provider
    name: str
    email: str

    @classmethod
    def from_user(cls, user: UserRecord) -> "Principal":
        return cls(id=user.id, name=user.name, email=user.email)
