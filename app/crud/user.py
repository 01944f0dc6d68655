"""
CRUD para usuarios.
"""
from typing import Optional, List
from sqlalchemy.orm import Session
from sqlalchemy import desc, func
from app.crud.base import CRUDBase
from app.models.user import User
from app.core.security import get_password_hash, verify_password


class CRUDUser(CRUDBase[User]):
    """CRUD específico para usuarios."""

    def get_by_email(self, db: Session, *, email: str) -> Optional[User]:
        """
        Obtener usuario por email.

        Args:
            db: Sesión de base de datos
            email: Email del usuario

        Returns:
            Usuario encontrado o None
        """
        return db.query(User).filter(func.lower(User.email) == email.lower()).first()

    def get_by_username(self, db: Session, *, username: str) -> Optional[User]:
        """Obtener usuario por nombre de usuario."""
        return db.query(User).filter(User.username == username).first()

    def create_with_password(
        self,
        db: Session,
        *,
        email: str,
        username: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        is_admin: bool = False,
    ) -> User:
        """
        Crear usuario con hash de contraseña.

        Los usuarios nuevos empiezan con 0 XP y nivel 1.
        """
        db_obj = User(
            email=email.lower(),
            username=username,
            password_hash=get_password_hash(password),
            first_name=first_name,
            last_name=last_name,
            is_admin=is_admin,
            xp=0,
            level=1,
        )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def authenticate(self, db: Session, *, email: str, password: str) -> Optional[User]:
        """
        Autenticar usuario.

        Args:
            db: Sesión de base de datos
            email: Email del usuario
            password: Contraseña en texto plano

        Returns:
            Usuario autenticado o None
        """
        user = self.get_by_email(db, email=email)
        if not user:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    def set_password(self, db: Session, *, db_obj: User, password: str) -> User:
        """Reemplazar el hash de contraseña del usuario."""
        return self.update(db, db_obj=db_obj, obj_in={"password_hash": get_password_hash(password)})

    def get_active_by_xp(self, db: Session, *, limit: Optional[int] = None) -> List[User]:
        """Obtener usuarios activos ordenados por XP descendente."""
        query = db.query(User).filter(User.is_active == True).order_by(desc(User.xp), User.created_at)
        if limit is not None:
            query = query.limit(limit)
        return query.all()


# Instancia global del CRUD
user = CRUDUser(User)
