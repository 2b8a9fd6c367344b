import argparse
import asyncio
import hashlib
import logging
import secrets
from datetime import timedelta
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError

from syndicate.clock import utcnow
from syndicate.container import game_config, player_service
from syndicate.create_postgres_engine import engine
from syndicate.crud import CreateData, DeleteData, ReadData
from syndicate.db import Session
from syndicate.errors import GameError, StorageError
from syndicate.load_secrets import pepper_data
from syndicate.models.schemas import PlayerToken

security = HTTPBearer(auto_error=False)


def hash_token(token: str) -> str:
    return hashlib.sha256((token + pepper_data).encode()).hexdigest()


def unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


class BearerAuthentication:
    def __init__(self, token_lifetime_hours: int = 72):
        self.token_lifetime = timedelta(hours=token_lifetime_hours)

    async def resolve_token(self, token: Optional[str]) -> UUID:
        """Look up the player a bearer token belongs to

        Args:
            token (Optional[str]): the raw token sent by the client

        Raises:
            HTTPException: the token is missing, unknown or expired

        Returns:
            UUID: the authenticated player's id
        """
        if not token:
            raise unauthorized("Missing bearer token")
        async with Session() as session:
            player_id = await ReadData.read_player_id_by_token(hash_token(token), utcnow(), session)
        if player_id is None:
            raise unauthorized("Invalid or expired token")
        return player_id

    async def check_player(
        self, credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
    ) -> UUID:
        return await self.resolve_token(credentials.credentials if credentials else None)

    async def check_stream_player(
        self,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
        token: Optional[str] = Query(None),
    ) -> UUID:
        """Browsers cannot set headers on an EventSource, so the stream also accepts ?token="""
        if credentials is not None:
            return await self.resolve_token(credentials.credentials)
        return await self.resolve_token(token)

    async def issue_token(self, player_id: UUID) -> str:
        token = secrets.token_urlsafe(32)
        try:
            async with Session() as session:
                async with session.begin():
                    await CreateData.add_token(
                        PlayerToken(
                            token_hash=hash_token(token),
                            player_id=player_id,
                            expires_at=utcnow() + self.token_lifetime,
                        ),
                        session,
                    )
        except SQLAlchemyError as e:
            logging.error(f"Failed to issue token for player {player_id}: {e}")
            raise StorageError("failed to store token") from e
        return token

    async def delete_expired_tokens(self) -> None:
        try:
            async with Session() as session:
                async with session.begin():
                    deleted = await DeleteData.delete_expired_tokens(utcnow(), session)
        except (GameError, SQLAlchemyError) as e:
            logging.error(f"Failed to delete expired tokens: {e}")
            return
        logging.info(f"Deleted {deleted} expired tokens")


bearer_auth = BearerAuthentication(game_config.token_lifetime_hours)


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Register a player and issue a bearer token")
    parser.add_argument("--name", type=str, help="Player name", required=True)
    return parser


async def main(name: str):
    await CreateData.create_table(engine)
    player = await player_service.register(name)
    token = await bearer_auth.issue_token(player.id)
    print(player.id, player.name, token)


if __name__ == "__main__":
    parser = get_parser()
    args = parser.parse_args()
    asyncio.run(main(args.name))
