"""
Perudo (dice bluffing).

Every round each player still in the game rolls their dice in secret. Players take turns raising a bid on how many dice
on the whole table show a face (ones are wild), or challenge the previous bid. After a challenge all dice are counted:
if the bid holds the challenger loses a die, otherwise the bidder does. The loser opens the next round.
A player without dice is out; the last player with dice wins.

Move format (JSON): {"number": 4, "faces": 5} to bid, {"challenge": true} to challenge the current bid.
"""

import random
from typing import Optional

from pydantic import BaseModel, ValidationError

from src.core.exceptions import IllegalMoveError
from src.games.base import BaseGameData, BasePlayer, RosterRulesEngine

PERUDO = "perudo"

START_DICE = 5
WILD_FACE = 1
LOWEST_BID_FACE = 2
HIGHEST_FACE = 6


class PerudoPlayer(BasePlayer):
    dice: list[int] = []  # empty when hidden from the viewer
    dice_count: int = START_DICE


class Bid(BaseModel):
    player_id: str
    number: int
    faces: int


class ChallengeOutcome(BaseModel):
    """Kept after the dice of a round are re-rolled, so everyone can see what the challenge revealed."""

    bid: Bid
    challenger_id: str
    counted: int
    loser_id: str


class PerudoData(BaseGameData):
    players: list[PerudoPlayer] = []
    round: int = 0
    current_bid: Optional[Bid] = None
    last_challenge: Optional[ChallengeOutcome] = None
    next_player_id: Optional[str] = None
    eliminated: list[str] = []  # in order of elimination


class PerudoMove(BaseModel):
    number: Optional[int] = None
    faces: Optional[int] = None
    challenge: bool = False


def in_game(player: PerudoPlayer) -> bool:
    return player.dice_count > 0


class PerudoEngine(RosterRulesEngine[PerudoData, PerudoPlayer]):
    name = PERUDO
    players_min = 2
    players_max = 6
    data_model = PerudoData
    player_model = PerudoPlayer

    def _deal(self, data: PerudoData) -> str:
        for player in data.players:
            player.dice_count = START_DICE
        data.round = 1
        self._roll(data)
        data.next_player_id = random.Random(f"{data.seed}:first").choice(data.players).id
        return data.next_player_id

    def _apply_move(self, data: PerudoData, player: PerudoPlayer, move: str) -> list[str]:
        if player.id != data.next_player_id:
            raise IllegalMoveError(f"Player {player.id!r} is not the one to bid.")
        try:
            parsed = PerudoMove.model_validate_json(move)
        except ValidationError as exc:
            raise IllegalMoveError(f"Cannot interpret move: {move!r}") from exc

        if parsed.challenge:
            return self._challenge(data, player)
        return self._bid(data, player, parsed)

    def _bid(self, data: PerudoData, player: PerudoPlayer, move: PerudoMove) -> list[str]:
        if move.number is None or move.faces is None:
            raise IllegalMoveError("A bid needs both a number of dice and a face.")
        if not LOWEST_BID_FACE <= move.faces <= HIGHEST_FACE:
            raise IllegalMoveError(
                f"Can only bid on faces {LOWEST_BID_FACE} to {HIGHEST_FACE}, not {move.faces}."
            )
        dice_in_play = sum(p.dice_count for p in data.players)
        if not 1 <= move.number <= dice_in_play:
            raise IllegalMoveError(f"Bid must be between 1 and {dice_in_play} dice.")

        current = data.current_bid
        if current is not None and not (
            move.number > current.number
            or (move.number == current.number and move.faces > current.faces)
        ):
            raise IllegalMoveError(
                f"Bid must raise {current.number} x {current.faces}: more dice, or a higher face."
            )

        data.current_bid = Bid(player_id=player.id, number=move.number, faces=move.faces)
        data.next_player_id = self._next_in_seating(data, player.id, in_game).id
        return [data.next_player_id]

    def _challenge(self, data: PerudoData, challenger: PerudoPlayer) -> list[str]:
        bid = data.current_bid
        if bid is None:
            raise IllegalMoveError("There is no bid to challenge yet.")

        counted = sum(
            1
            for player in data.players
            for die in player.dice
            if die in (bid.faces, WILD_FACE)
        )
        loser = challenger if counted >= bid.number else self._player(data, bid.player_id)
        loser.dice_count -= 1
        if not in_game(loser):
            loser.dice = []
            data.eliminated.append(loser.id)
        data.last_challenge = ChallengeOutcome(
            bid=bid, challenger_id=challenger.id, counted=counted, loser_id=loser.id
        )
        data.current_bid = None

        remaining = [player for player in data.players if in_game(player)]
        if len(remaining) == 1:
            self._finish(data, remaining[0])
            return []

        data.round += 1
        self._roll(data)
        starter = loser if in_game(loser) else self._next_in_seating(data, loser.id, in_game)
        data.next_player_id = starter.id
        return [starter.id]

    def _finish(self, data: PerudoData, winner: PerudoPlayer) -> None:
        data.finished = True
        data.next_player_id = None
        winner.place = 1
        # last one out came second
        for offset, player_id in enumerate(reversed(data.eliminated)):
            self._player(data, player_id).place = offset + 2

    def _roll(self, data: PerudoData) -> None:
        rng = random.Random(f"{data.seed}:{data.round}")
        for player in data.players:
            player.dice = sorted(rng.randint(1, HIGHEST_FACE) for _ in range(player.dice_count))

    def _redact(self, data: PerudoData, viewer_id: str) -> None:
        for player in data.players:
            if player.id != viewer_id:
                player.dice = []
