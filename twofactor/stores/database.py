"""数据库挑战存储（SQLAlchemy）

使用示例:
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker

    engine = create_engine("postgresql://...")
    ChallengeBase.metadata.create_all(engine)

    store = SQLAlchemyChallengeStore(sessionmaker(bind=engine))
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import DateTime, String, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from .base import Challenge, ChallengeStore, StoreError


class ChallengeBase(DeclarativeBase):
    """挑战表的声明基类"""
    pass


class TwoFactorChallengeRecord(ChallengeBase):
    """二次验证挑战表（每个账户一行）"""

    __tablename__ = "two_factor_challenge"

    account_id: Mapped[str] = mapped_column(String(255), primary_key=True, comment="账户ID")
    token: Mapped[str] = mapped_column(String(255), nullable=False, comment="挑战令牌")
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, comment="过期时间")

    def to_challenge(self) -> Challenge:
        expires_at = self.expires_at
        # SQLite 不保存时区
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return Challenge(token=self.token, expires_at=expires_at)


class SQLAlchemyChallengeStore(ChallengeStore):
    """SQLAlchemy 挑战存储

    Args:
        session_factory: sessionmaker 实例
        create_tables: 是否在初始化时建表
    """

    def __init__(self, session_factory: sessionmaker, create_tables: bool = False):
        self._session_factory = session_factory
        if create_tables:
            ChallengeBase.metadata.create_all(session_factory.kw["bind"])

    def put(self, account_id: Any, challenge: Challenge, ttl_seconds: int) -> None:
        record = TwoFactorChallengeRecord(
            account_id=str(account_id),
            token=challenge.token,
            expires_at=challenge.expires_at.astimezone(timezone.utc),
        )
        try:
            with self._session_factory() as session, session.begin():
                session.merge(record)
        except SQLAlchemyError as e:
            raise StoreError(f"Database write failed: {e}") from e

    def get(self, account_id: Any) -> Optional[Challenge]:
        try:
            with self._session_factory() as session:
                record = session.get(TwoFactorChallengeRecord, str(account_id))
                return record.to_challenge() if record else None
        except SQLAlchemyError as e:
            raise StoreError(f"Database read failed: {e}") from e

    def delete(self, account_id: Any) -> bool:
        try:
            with self._session_factory() as session, session.begin():
                result = session.execute(
                    delete(TwoFactorChallengeRecord)
                    .where(TwoFactorChallengeRecord.account_id == str(account_id))
                )
                return result.rowcount > 0
        except SQLAlchemyError as e:
            raise StoreError(f"Database delete failed: {e}") from e

    def pop(self, account_id: Any) -> Optional[Challenge]:
        try:
            with self._session_factory() as session, session.begin():
                record = session.execute(
                    select(TwoFactorChallengeRecord)
                    .where(TwoFactorChallengeRecord.account_id == str(account_id))
                    .with_for_update()
                ).scalar_one_or_none()
                if record is None:
                    return None
                challenge = record.to_challenge()
                session.delete(record)
                return challenge
        except SQLAlchemyError as e:
            raise StoreError(f"Database pop failed: {e}") from e
