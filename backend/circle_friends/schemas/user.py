from pydantic import BaseModel


class UserProfile(BaseModel):
    id: str
    name: str | None = None
    username: str | None = None
    image_uri: str | None = None
    bio: str | None = None

    class Config:
        from_attributes = True

    @property
    def display_name(self) -> str:
        return self.name or self.username or "Someone"

    @property
    def handle(self) -> str:
        if self.username:
            return self.username
        return "".join((self.name or "").lower().split())
