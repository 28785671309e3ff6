from pydantic import BaseModel, EmailStr

from exco_nominations.config import SUPER_ADMIN_PRIVILEGE


class AdminUser(BaseModel):
    name: str
    email: EmailStr
    privilege: str

    @property
    def is_super_admin(self) -> bool:
        return self.privilege == SUPER_ADMIN_PRIVILEGE
