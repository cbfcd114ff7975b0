"""
User service for Files API document operations.
Users are stored with a bcrypt hash of their password, never the plaintext.
"""

import base64
import binascii
import logging
from typing import Optional, Tuple

import bcrypt
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from database.mongo_adapter import MongoAdapter
from files_api.errors import DuplicateUser, Unauthorized, ValidationError
from files_api.identifiers import parse_object_id
from files_api.schemas import User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def hash_password(password: str) -> str:
    """Hash a password using bcrypt"""
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash"""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def parse_basic_auth(header: Optional[str]) -> Tuple[str, str]:
    """Split an ``Authorization: Basic <base64>`` header into email and password"""
    if not header or not header.startswith("Basic "):
        raise Unauthorized()
    try:
        decoded = base64.b64decode(header[len("Basic "):], validate=True).decode('utf-8')
    except (binascii.Error, UnicodeDecodeError):
        raise Unauthorized() from None
    email, separator, password = decoded.partition(":")
    if not separator:
        raise Unauthorized()
    return email, password


class UserService:
    """Service for looking up, creating and authenticating users"""

    def __init__(self, db: MongoAdapter):
        self.db = db

    def find_by_email(self, email: Optional[str]) -> Optional[User]:
        if not email:
            return None
        document = self.db.users.find_one({"email": normalize_email(email)})
        return User.from_document(document) if document else None

    def find_by_id(self, user_id) -> Optional[User]:
        try:
            user_id = parse_object_id(user_id, "userId")
        except ValidationError:
            return None
        document = self.db.users.find_one({"_id": user_id})
        return User.from_document(document) if document else None

    def create(self, email: Optional[str], password: Optional[str]) -> ObjectId:
        """Register a new user and return its id.

        Raises:
            ValidationError: email or password is missing.
            DuplicateUser: a user with this email already exists.
        """
        if not email:
            raise ValidationError("email")
        if not password:
            raise ValidationError("password")

        email = normalize_email(email)
        if self.find_by_email(email):
            raise DuplicateUser()

        try:
            result = self.db.users.insert_one({"email": email, "password": hash_password(password)})
        except DuplicateKeyError:
            # Lost a race with a concurrent registration
            raise DuplicateUser() from None

        logger.info(f"Created user {result.inserted_id}")
        return result.inserted_id

    def verify_credentials(self, email: Optional[str], password: Optional[str]) -> User:
        """Return the user matching the credentials; any mismatch is ``Unauthorized``"""
        user = self.find_by_email(email)
        if user is None or not verify_password(password or "", user.password):
            raise Unauthorized()
        return user
