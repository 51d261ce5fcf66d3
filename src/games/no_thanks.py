"""
No Thanks! card game.

Cards 3 to 35, nine of them removed unseen. The player to move either pays a chip to refuse the face-up card
(the turn passes on, the chip stays on the card) or takes the card together with all chips on it, and then decides on the next card.
When the last card is taken the game ends: every run of consecutive cards only counts its lowest card, chips count as minus one point each,
and the lowest total wins.

Move format (JSON): {"take": true} or {"take": false}
"""

import random
from typing import Optional

from pydantic import BaseModel, ValidationError

from src.core.exceptions import IllegalMoveError
from src.games.base import (
    BaseGameData,
    BasePlayer,
    RosterRulesEngine,
    competition_places,
)

NO_THANKS = "no_thanks"

LOWEST_CARD = 3
HIGHEST_CARD = 35
REMOVED_CARDS = 9
START_CHIPS = 11


class NoThanksPlayer(BasePlayer):
    cards: list[int] = []
    chips: Optional[int] = START_CHIPS  # None when hidden from the viewer
    points: Optional[int] = None


class NoThanksData(BaseGameData):
    players: list[NoThanksPlayer] = []
    deck: list[int] = []  # face down, top card last
    cards_left: int = 0
    current_card: Optional[int] = None
    current_card_chips: int = 0
    next_player_id: Optional[str] = None


class NoThanksMove(BaseModel):
    take: bool


def card_points(cards: list[int]) -> int:
    """Sum of the lowest card of every run of consecutive cards."""
    owned = set(cards)
    return sum(card for card in owned if card - 1 not in owned)


class NoThanksEngine(RosterRulesEngine[NoThanksData, NoThanksPlayer]):
    name = NO_THANKS
    players_min = 3
    players_max = 5
    data_model = NoThanksData
    player_model = NoThanksPlayer

    def _deal(self, data: NoThanksData) -> str:
        rng = random.Random(data.seed)
        cards = list(range(LOWEST_CARD, HIGHEST_CARD + 1))
        rng.shuffle(cards)
        data.deck = cards[REMOVED_CARDS:]
        data.current_card = data.deck.pop()
        data.cards_left = len(data.deck)
        data.current_card_chips = 0
        for player in data.players:
            player.cards = []
            player.chips = START_CHIPS
        data.next_player_id = rng.choice(data.players).id
        return data.next_player_id

    def _apply_move(self, data: NoThanksData, player: NoThanksPlayer, move: str) -> list[str]:
        if player.id != data.next_player_id:
            raise IllegalMoveError(f"Player {player.id!r} is not the one to decide on the current card.")
        try:
            take = NoThanksMove.model_validate_json(move).take
        except ValidationError as exc:
            raise IllegalMoveError(f"Cannot interpret move: {move!r}") from exc

        if not take:
            if not player.chips:
                raise IllegalMoveError("No chips left: the card has to be taken.")
            player.chips -= 1
            data.current_card_chips += 1
            data.next_player_id = self._next_in_seating(data, player.id).id
            return [data.next_player_id]

        player.cards = sorted(player.cards + [data.current_card])
        player.chips += data.current_card_chips
        data.current_card_chips = 0

        if data.deck:
            data.current_card = data.deck.pop()
            data.cards_left = len(data.deck)
            return [player.id]

        self._finish(data)
        return []

    def _finish(self, data: NoThanksData) -> None:
        data.current_card = None
        data.next_player_id = None
        data.finished = True
        for player in data.players:
            player.points = card_points(player.cards) - player.chips
        places = competition_places({player.id: player.points for player in data.players})
        for player in data.players:
            player.place = places[player.id]

    def _redact(self, data: NoThanksData, viewer_id: str) -> None:
        """Chip counts are secret, so is the order of the deck."""
        data.deck = []
        for player in data.players:
            if player.id != viewer_id:
                player.chips = None
