"""Typed view of the ``Game.storage`` document.

The stored JSON keys players and editors by stringified slot numbers::

    {
        "players": {"12": {"id": 12, "team": 0, "username": "alice"}},
        "editors": {"0": {"id": 0, "team": 0, "player": 12, "language": "html"}},
        ...
    }

``GameStorage`` parses those maps into integer-keyed pydantic models and
writes them back with string keys. Fields it does not know about, on records
or at the top level, are carried through untouched, and records are written
back with only the fields they were read with (ids keep their JSON type).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Slot and user id of the anonymous stand-in for deleted participants.
COMPETITOR_ID = 0
COMPETITOR_USERNAME = "Competitor"


class PlayerRecord(BaseModel):
    """A player who took part in the game."""

    model_config = ConfigDict(extra="allow")

    id: int | str
    team: int | str | None = None
    username: str | None = None


class EditorRecord(BaseModel):
    """An editor seat; ``player`` is the id of the user typing in it."""

    model_config = ConfigDict(extra="allow")

    player: int | str | None = None


class GameStorage(BaseModel):
    """Players and editors embedded in a game."""

    model_config = ConfigDict(extra="allow")

    players: dict[int, PlayerRecord] = Field(default_factory=dict)
    editors: dict[int, EditorRecord] = Field(default_factory=dict)

    @classmethod
    def from_document(cls, document: dict[str, Any] | None) -> GameStorage:
        """
        Parse a stored document.

        Missing or null ``players``/``editors`` maps are read as empty.

        Raises:
            pydantic.ValidationError: If a slot key is not an integer or a
                record does not match its schema.
        """
        data = dict(document or {})
        for key in ("players", "editors"):
            if data.get(key) is None:
                data.pop(key, None)
        return cls.model_validate(data)

    def to_document(self) -> dict[str, Any]:
        """Serialize back to the stored JSON shape (string slot keys)."""
        document = self.model_dump(mode="json", exclude={"players", "editors"})
        document["players"] = {
            str(slot): record.model_dump(mode="json", exclude_unset=True) for slot, record in self.players.items()
        }
        document["editors"] = {
            str(slot): record.model_dump(mode="json", exclude_unset=True) for slot, record in self.editors.items()
        }
        return document

    def anonymize_player(self, user_id: int) -> bool:
        """
        Replace the player keyed by ``user_id`` with the Competitor.

        The Competitor takes slot 0 and keeps the team of the removed player.
        Whatever occupied slot 0 before is overwritten.
        """
        player = self.players.pop(user_id, None)
        if player is None:
            return False
        self.players[COMPETITOR_ID] = PlayerRecord(
            id=COMPETITOR_ID,
            team=player.team,
            username=COMPETITOR_USERNAME,
        )
        return True

    def anonymize_editors(self, user_id: int) -> int:
        """Point every editor seat held by ``user_id`` at the Competitor."""
        changed = 0
        for editor in self.editors.values():
            if editor.player == user_id:
                editor.player = COMPETITOR_ID
                changed += 1
        return changed

    def anonymize_user(self, user_id: int) -> bool:
        """Remove ``user_id`` from players and editors. True if anything changed."""
        replaced_player = self.anonymize_player(user_id)
        replaced_editors = self.anonymize_editors(user_id)
        return replaced_player or replaced_editors > 0
