# Fichier: app/crud/user_crud.py

from sqlalchemy.orm import Session
from app.models.user.user_model import User
from app.schemas.user.user_schema import UserCreate
from app.core.security import get_password_hash
from typing import Optional


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """
    Récupère un utilisateur par son adresse email (insensible à la casse).

    Args:
        db: La session de base de données.
        email: L'email de l'utilisateur à rechercher.

    Returns:
        L'objet User s'il est trouvé, sinon None.
    """
    return db.query(User).filter(User.email == normalize_email(email)).first()


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    """
    Récupère un utilisateur par son nom d'utilisateur.

    Args:
        db: La session de base de données.
        username: Le nom d'utilisateur à rechercher.

    Returns:
        L'objet User s'il est trouvé, sinon None.
    """
    return db.query(User).filter(User.username == username).first()


def get_user_for_update(db: Session, user_id: int) -> Optional[User]:
    """Charge l'utilisateur en verrouillant sa ligne jusqu'à la fin de la transaction."""
    return (
        db.query(User)
        .filter(User.id == user_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def create_user(db: Session, user: UserCreate) -> User:
    """
    Ajoute un nouvel utilisateur à la session, sans commit.

    Args:
        db: La session de base de données.
        user: L'objet UserCreate contenant les données du nouvel utilisateur.

    Returns:
        L'objet User ajouté (flushé, donc doté d'un id).
    """
    db_user = User(
        email=normalize_email(user.email),
        username=user.username,
        hashed_password=get_password_hash(user.password),
        total_xp=0,
        current_streak=0,
        best_streak=0,
    )
    db.add(db_user)
    db.flush()
    return db_user


def normalize_email(email: str) -> str:
    return email.strip().lower()
