# investment_tracker/services/user_service.py
from uuid import uuid4
from typing import List, Optional

import bcrypt

from investment_tracker.db.enums import UserRole, RESERVED_ADMIN_USERNAME
from investment_tracker.models.user import User
from investment_tracker.services.clock import Clock, utc_now, to_iso
from investment_tracker.services.persistence_service import PersistenceService, seed_users
from investment_tracker.logger import get_logger

logger = get_logger(__name__)

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


class UserService:
    """
    Dashboard operator accounts.
    Provides:
    - add / delete users
    - role changes
    - authentication

    Passwords are stored as given unless hash_passwords is on, in which case
    new passwords are stored as bcrypt hashes. Stored plaintext passwords keep
    working either way.
    """

    def __init__(
        self,
        persistence: PersistenceService,
        *,
        hash_passwords: bool = False,
        clock: Clock = utc_now,
    ):
        self.persistence = persistence
        self.hash_passwords = hash_passwords
        self.clock = clock
        self.users: List[User] = persistence.load_users()

    # ======================================================
    # 🔐 Internal helpers
    # ======================================================

    def _hash_password(self, password: str) -> str:
        '''Hash a password using bcrypt'''
        return bcrypt.hashpw(
            password.encode("utf-8"),
            bcrypt.gensalt(),
        ).decode("utf-8")

    def _verify_password(self, password: str, stored: str) -> bool:
        '''verify a password against its stored form (bcrypt hash or plaintext)'''
        if stored.startswith(_BCRYPT_PREFIXES):
            try:
                return bcrypt.checkpw(password.encode("utf-8"), stored.encode("utf-8"))
            except ValueError:
                return False
        return password == stored

    @staticmethod
    def is_reserved(user: User) -> bool:
        return user.username.lower() == RESERVED_ADMIN_USERNAME

    # ======================================================
    # 👤 User CRUD
    # ======================================================

    def list_users(self) -> List[User]:
        return list(self.users)

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        return next((u for u in self.users if u.id == user_id), None)

    def get_user_by_username(self, username: str) -> Optional[User]:
        wanted = (username or "").strip().lower()
        return next((u for u in self.users if u.username.lower() == wanted), None)

    def add_user(
        self,
        *,
        username: str,
        password: str,
        role: UserRole = UserRole.VIEWER,
    ) -> User:
        """
        Register a new user.

        :param username: Login name (unique, case-insensitive)
        :type username: str
        :param password: Plaintext password
        :type password: str
        :param role: Role granted to the user
        :type role: UserRole
        """

        # 1️⃣ 必填校验
        username = (username or "").strip()
        password = (password or "").strip()
        if not username or not password:
            raise ValueError("Both username and password are required")

        # 2️⃣ username 唯一性校验
        if self.get_user_by_username(username):
            raise ValueError(f"Username '{username}' already exists")

        # 3️⃣ 创建用户
        user = User(
            id=str(uuid4()),
            username=username,
            password=self._hash_password(password) if self.hash_passwords else password,
            role=UserRole(role),
            createdAt=to_iso(self.clock()),
        )

        self.users.append(user)
        self.persistence.save_users(self.users)
        logger.info(f"User created: {username} ({user.role.value})")
        return user

    def delete_user(self, user_id: str) -> None:
        '''
        Remove a user. The reserved admin account is never removed.
        Unknown id is a no-op.
        '''
        user = self.get_user_by_id(user_id)
        if not user:
            return
        if self.is_reserved(user):
            logger.warning("Refused to delete the reserved admin account")
            return

        self.users = [u for u in self.users if u.id != user_id]
        self.persistence.save_users(self.users)
        logger.info(f"User deleted: {user.username}")

    def update_user_role(self, *, user_id: str, role: UserRole) -> Optional[User]:
        """
        Change a user's role.

        :param user_id: ID of the user to change
        :type user_id: str
        :param role: new role
        :type role: UserRole
        :raises PermissionError: when demoting the reserved admin
        """
        role = UserRole(role)
        for index, user in enumerate(self.users):
            if user.id != user_id:
                continue
            if self.is_reserved(user) and role != UserRole.ADMIN:
                raise PermissionError("The reserved admin account cannot be demoted")
            updated = user.model_copy(update={"role": role})
            self.users[index] = updated
            self.persistence.save_users(self.users)
            logger.info(f"User role changed: {user.username} -> {role.value}")
            return updated
        return None

    # ======================================================
    # 🔑 Authentication
    # ======================================================

    def authenticate(self, *, username: str, password: str) -> User:
        """
        Authenticate by username (case-insensitive) + password (exact).
        Returns User if successful.

        :param username: Login name
        :type username: str
        :param password: Plaintext password
        :type password: str
        :raises ValueError: on unknown username or wrong password
        """
        user = self.get_user_by_username(username)
        if not user or not self._verify_password(password or "", user.password):
            raise ValueError("Invalid username or password.")
        return user

    def ensure_reserved_admin(self) -> User:
        '''Recreate the reserved admin if the stored users lost it.'''
        existing = self.get_user_by_username(RESERVED_ADMIN_USERNAME)
        if existing:
            return existing
        admin = seed_users(self.clock)[0]
        if self.hash_passwords:
            admin = admin.model_copy(update={"password": self._hash_password(admin.password)})
        self.users.insert(0, admin)
        self.persistence.save_users(self.users)
        logger.info("Reserved admin account recreated")
        return admin
