from sequence_server import db
from datetime import datetime, timezone
import json
import uuid

TEAMS = ('red', 'green', 'blue')


def new_id():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _loads(raw, default):
    if not raw:
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return default


class Player(db.Model):
    __tablename__ = 'player'
    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(50), nullable=False)
    role = db.Column(db.String(16), nullable=False, default='player')
    game_id = db.Column(db.String(36), db.ForeignKey('game.id'), nullable=False, index=True)
    team = db.Column(db.String(16), nullable=True)
    # Join position within the game, 0 for the host
    seat = db.Column(db.Integer, nullable=False, default=0)
    cards_json = db.Column('cards', db.Text, nullable=True)  # JSON-encoded list of {rank, suit}
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)
    game = db.relationship('Game', back_populates='players', foreign_keys=[game_id])

    @property
    def cards(self):
        return _loads(self.cards_json, [])

    @cards.setter
    def cards(self, value):
        self.cards_json = json.dumps(list(value or []))

    def to_dict(self, include_cards=True):
        data = {
            'id': self.id,
            'name': self.name,
            'role': self.role,
            'gameId': self.game_id,
            'team': self.team,
            'seat': self.seat,
        }
        if include_cards:
            data['cards'] = self.cards
        return data


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.String(36), primary_key=True, default=new_id)
    link = db.Column(db.String(255), unique=True, index=True)
    status = db.Column(db.String(32), default='waiting', nullable=False, index=True)  # waiting, in-progress, completed
    max_players = db.Column(db.Integer, default=4, nullable=False)
    host_id = db.Column(db.String(36), db.ForeignKey('player.id', name='fk_game_host_id', use_alter=True), nullable=True)
    players = db.relationship('Player', back_populates='game', foreign_keys='Player.game_id', order_by='Player.seat')
    # JSON-encoded list of player ids; turn order follows it
    roster_order = db.Column(db.Text, nullable=True)
    settings_json = db.Column('settings', db.Text, nullable=True)
    # Game data, populated once the game leaves 'waiting'
    deck_json = db.Column('deck', db.Text, nullable=True)
    board_json = db.Column('board', db.Text, nullable=True)
    current_turn = db.Column(db.String(36), nullable=True)
    score_json = db.Column('score', db.Text, nullable=True)
    winner = db.Column(db.String(16), nullable=True)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    @property
    def host(self):
        if self.host_id:
            return db.session.get(Player, self.host_id)
        return None

    @property
    def roster_ids(self):
        return _loads(self.roster_order, [])

    @roster_ids.setter
    def roster_ids(self, ids):
        self.roster_order = json.dumps(list(ids))

    @property
    def settings(self):
        return _loads(self.settings_json, {})

    @settings.setter
    def settings(self, value):
        self.settings_json = json.dumps(value or {})

    @property
    def deck(self):
        return _loads(self.deck_json, [])

    @deck.setter
    def deck(self, cards):
        self.deck_json = json.dumps(list(cards))

    @property
    def board(self):
        return _loads(self.board_json, [])

    @board.setter
    def board(self, slots):
        self.board_json = json.dumps(list(slots))

    @property
    def score(self):
        return _loads(self.score_json, {})

    @score.setter
    def score(self, value):
        self.score_json = json.dumps(value or {})

    def players_in_join_order(self):
        return sorted(self.players, key=lambda p: p.seat or 0)

    def ordered_players(self):
        """Players in roster order; anyone missing from the stored order follows by seat."""
        by_id = {p.id: p for p in self.players}
        ordered = [by_id.pop(pid) for pid in self.roster_ids if pid in by_id]
        return ordered + [p for p in self.players_in_join_order() if p.id in by_id]

    def to_dict(self, include_cards=False):
        game_data = None
        if self.status != 'waiting':
            game_data = {
                'deckCount': len(self.deck),
                'board': self.board,
                'currentTurn': self.current_turn,
                'score': self.score,
                'winner': self.winner,
            }
        host = self.host
        return {
            'id': self.id,
            'link': self.link,
            'status': self.status,
            'maxPlayers': self.max_players,
            'host': host.to_dict(include_cards=False) if host else None,
            'players': [p.to_dict(include_cards=include_cards) for p in self.ordered_players()],
            'gameSettings': self.settings,
            'gameData': game_data,
        }
