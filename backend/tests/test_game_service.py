import json
from contextlib import contextmanager

import pytest

from app.core.errors import ErrorCode, GameError
from app.models.description import Description
from app.models.player import Player
from app.models.room import Room
from app.models.vote import Vote
from app.schemas.room_schemas import GameAction
from app.services.game_service import can_transition
from app.services.turn_sequencer import current_turn_player

TEXT = "这个东西很常见呀"


def get_room(db, room_id):
    return db.query(Room).filter(Room.id == room_id).first()


def players_of(db, room_id):
    return db.query(Player).filter(Player.room_id == room_id).order_by(Player.join_order).all()


def token_of(db, player_id):
    return db.query(Player).filter(Player.id == player_id).first().token


def start_to_voting(game, db, room_id, host):
    game.start_game(room_id, host)
    game.confirm_word(room_id, host)
    game.start_voting(room_id, host)


def vote_out(game, db, room_id, target_id):
    """所有存活玩家投给target，target自己投给另一名存活玩家"""
    alive = [p for p in players_of(db, room_id) if p.is_alive]
    other = next(p for p in alive if p.id != target_id)
    for voter in alive:
        game.submit_vote(room_id, voter.token, other.id if voter.id == target_id else target_id)


@contextmanager
def expect_error(code):
    with pytest.raises(GameError) as exc:
        yield exc
    assert exc.value.code == code


def test_transition_table():
    assert can_transition("waiting", "word-reveal")
    assert can_transition("voting", "game-over")
    assert can_transition("result", "description")
    assert not can_transition("waiting", "voting")
    assert not can_transition("game-over", "description")


# ── 鉴权顺序 ──────────────────────────────────────────────────────────────

def test_unknown_room(game):
    with expect_error(ErrorCode.ROOM_NOT_FOUND):
        game.start_game("missing", "token")


def test_unknown_token(game, make_room):
    room_id, _ = make_room(3)
    with expect_error(ErrorCode.PLAYER_NOT_FOUND):
        game.start_game(room_id, "bogus")


def test_host_check_precedes_phase_check(game, make_room):
    room_id, tokens = make_room(3)
    game.start_game(room_id, tokens[0])
    with expect_error(ErrorCode.NOT_AUTHORIZED):
        game.start_game(room_id, tokens[1])
    with expect_error(ErrorCode.INVALID_PHASE):
        game.start_game(room_id, tokens[0])


def test_start_requires_three_players(game, make_room):
    room_id, tokens = make_room(2)
    with expect_error(ErrorCode.INVALID_ACTION):
        game.start_game(room_id, tokens[0])
    assert get_room(game.db, room_id).phase == "waiting"


def test_start_assigns_roles_and_words(game, db, make_room):
    room_id, tokens = make_room(5, spy_count=2)
    game.start_game(room_id, tokens[0])

    room = get_room(db, room_id)
    players = players_of(db, room_id)
    spies = [p.id for p in players if p.role == "spy"]
    assert room.phase == "word-reveal"
    assert len(spies) == 2
    assert all(p.role in ("spy", "civilian") for p in players)
    assert sorted(json.loads(room.game_state)["spy_ids"]) == sorted(spies)
    assert room.civilian_word and room.spy_word
    assert 0 <= room.current_turn < 5


def test_confirm_word_does_not_wait_for_players(game, db, make_room):
    room_id, tokens = make_room(3)
    game.start_game(room_id, tokens[0])
    game.confirm_word_player(room_id, tokens[1])
    game.confirm_word(room_id, tokens[0])

    assert get_room(db, room_id).phase == "description"
    confirmed = {p.name: p.word_confirmed for p in players_of(db, room_id)}
    assert confirmed == {"房主": False, "玩家1": True, "玩家2": False}


# ── 描述阶段 ──────────────────────────────────────────────────────────────

def test_descriptions_follow_turn_order(game, db, make_room):
    room_id, tokens = make_room(3)
    game.start_game(room_id, tokens[0])
    game.confirm_word(room_id, tokens[0])

    room = get_room(db, room_id)
    before = room.current_turn
    first = current_turn_player(players_of(db, room_id), before)
    waiting = next(p for p in players_of(db, room_id) if p.id != first.id)

    with expect_error(ErrorCode.INVALID_ACTION):
        game.submit_description(room_id, waiting.token, TEXT)

    game.submit_description(room_id, first.token, TEXT)
    assert db.query(Description).filter(Description.room_id == room_id).count() == 1
    assert get_room(db, room_id).current_turn == (before + 1) % 3


def test_description_validation(game, db, make_room):
    room_id, tokens = make_room(3)
    game.start_game(room_id, tokens[0])
    game.confirm_word(room_id, tokens[0])

    room = get_room(db, room_id)
    before = room.current_turn
    speaker = current_turn_player(players_of(db, room_id), room.current_turn)
    own_word = room.spy_word if speaker.role == "spy" else room.civilian_word

    with expect_error(ErrorCode.INVALID_INPUT):
        game.submit_description(room_id, speaker.token, "短")
    with expect_error(ErrorCode.INVALID_INPUT):
        game.submit_description(room_id, speaker.token, "很" * 51)
    with expect_error(ErrorCode.INVALID_INPUT):
        game.submit_description(room_id, speaker.token, f"它就是{own_word}没错")
    assert get_room(db, room_id).current_turn == before


def test_skip_player_advances_turn(game, db, make_room):
    room_id, tokens = make_room(3)
    game.start_game(room_id, tokens[0])
    game.confirm_word(room_id, tokens[0])
    before = get_room(db, room_id).current_turn

    with expect_error(ErrorCode.NOT_AUTHORIZED):
        game.skip_player(room_id, tokens[1])
    game.skip_player(room_id, tokens[0])
    assert get_room(db, room_id).current_turn == (before + 1) % 3


# ── 投票与结算 ────────────────────────────────────────────────────────────

def test_vote_rules(game, db, make_room):
    room_id, tokens = make_room(4)
    start_to_voting(game, db, room_id, tokens[0])
    players = players_of(db, room_id)

    with expect_error(ErrorCode.INVALID_ACTION):
        game.submit_vote(room_id, players[0].token, players[0].id)
    with expect_error(ErrorCode.PLAYER_NOT_FOUND):
        game.submit_vote(room_id, players[0].token, "nobody")

    game.submit_vote(room_id, players[0].token, players[1].id)
    with expect_error(ErrorCode.INVALID_ACTION):
        game.submit_vote(room_id, players[0].token, players[2].id)
    assert db.query(Vote).filter(Vote.room_id == room_id).count() == 1


def test_three_players_one_spy_civilians_win(game, db, make_room):
    room_id, tokens = make_room(3, spy_count=1)
    game.start_game(room_id, tokens[0])
    game.confirm_word(room_id, tokens[0])

    for _ in range(3):
        room = get_room(db, room_id)
        speaker = current_turn_player(players_of(db, room_id), room.current_turn)
        game.submit_description(room_id, speaker.token, TEXT)
    game.start_voting(room_id, tokens[0])

    spy = next(p for p in players_of(db, room_id) if p.role == "spy")
    vote_out(game, db, room_id, spy.id)
    result = game.finalize_voting(room_id, tokens[0])

    assert result == {"success": True, "eliminated_player_ids": [spy.id], "game_over": True}
    room = get_room(db, room_id)
    assert room.phase == "game-over"
    assert json.loads(room.game_state)["winner"] == "civilian"


def test_spy_wins_at_parity(game, db, make_room):
    room_id, tokens = make_room(3, spy_count=1)
    start_to_voting(game, db, room_id, tokens[0])

    civilian = next(p for p in players_of(db, room_id) if p.role == "civilian")
    vote_out(game, db, room_id, civilian.id)
    result = game.finalize_voting(room_id, tokens[0])

    assert result["game_over"]
    assert json.loads(get_room(db, room_id).game_state)["winner"] == "spy"


def test_four_way_tie_eliminates_everyone(game, db, make_room):
    room_id, tokens = make_room(4, spy_count=1)
    start_to_voting(game, db, room_id, tokens[0])

    players = players_of(db, room_id)
    for i, voter in enumerate(players):
        game.submit_vote(room_id, voter.token, players[(i + 1) % 4].id)
    result = game.finalize_voting(room_id, tokens[0])

    assert sorted(result["eliminated_player_ids"]) == sorted(p.id for p in players)
    assert not any(p.is_alive for p in players_of(db, room_id))
    assert json.loads(get_room(db, room_id).game_state)["winner"] == "civilian"


def test_no_votes_goes_to_result(game, db, make_room):
    room_id, tokens = make_room(4, spy_count=1)
    start_to_voting(game, db, room_id, tokens[0])
    result = game.finalize_voting(room_id, tokens[0])

    assert result == {"success": True, "eliminated_player_ids": [], "game_over": False}
    assert get_room(db, room_id).phase == "result"


def test_continue_game_starts_next_round(game, db, make_room):
    room_id, tokens = make_room(5, spy_count=1)
    start_to_voting(game, db, room_id, tokens[0])
    civilian = next(p for p in players_of(db, room_id) if p.role == "civilian")
    vote_out(game, db, room_id, civilian.id)
    game.finalize_voting(room_id, tokens[0])
    game.continue_game(room_id, tokens[0])

    room = get_room(db, room_id)
    assert room.phase == "description"
    assert room.round == 2
    assert room.current_turn == 0


def test_eliminated_player_cannot_act(game, db, make_room):
    room_id, tokens = make_room(5, spy_count=1)
    start_to_voting(game, db, room_id, tokens[0])
    civilian = next(p for p in players_of(db, room_id) if p.role == "civilian" and p.token != tokens[0])
    vote_out(game, db, room_id, civilian.id)
    game.finalize_voting(room_id, tokens[0])
    game.continue_game(room_id, tokens[0])
    game.start_voting(room_id, tokens[0])

    alive = next(p for p in players_of(db, room_id) if p.is_alive)
    with expect_error(ErrorCode.INVALID_ACTION):
        game.submit_vote(room_id, civilian.token, alive.id)


# ── 重新开始与房间管理 ────────────────────────────────────────────────────

def test_restart_mid_voting(game, db, make_room):
    room_id, tokens = make_room(6, spy_count=1)
    start_to_voting(game, db, room_id, tokens[0])

    for _ in range(2):
        civilian = next(p for p in players_of(db, room_id) if p.role == "civilian" and p.is_alive)
        vote_out(game, db, room_id, civilian.id)
        game.finalize_voting(room_id, tokens[0])
        game.continue_game(room_id, tokens[0])
        game.start_voting(room_id, tokens[0])
    alive = [p for p in players_of(db, room_id) if p.is_alive]
    game.submit_vote(room_id, alive[0].token, alive[1].id)
    assert len(alive) == 4

    game.restart_game(room_id, tokens[0])

    room = get_room(db, room_id)
    players = players_of(db, room_id)
    assert room.phase == "waiting"
    assert (room.round, room.current_turn) == (1, 0)
    assert room.civilian_word is None and room.game_state is None
    assert len(players) == 6
    assert all(p.role is None and p.is_alive for p in players)
    assert db.query(Vote).filter(Vote.room_id == room_id).count() == 0
    assert db.query(Description).filter(Description.room_id == room_id).count() == 0

    game.restart_game(room_id, tokens[0])
    assert len(players_of(db, room_id)) == 6


def test_restart_recovers_corrupt_state(game, db, make_room):
    room_id, tokens = make_room(3)
    start_to_voting(game, db, room_id, tokens[0])
    room = get_room(db, room_id)
    room.game_state = "{not json"
    db.commit()

    with expect_error(ErrorCode.DATABASE_ERROR):
        game.finalize_voting(room_id, tokens[0])
    game.restart_game(room_id, tokens[0])
    assert get_room(db, room_id).phase == "waiting"


def test_update_settings_range(game, db, make_room):
    room_id, tokens = make_room(3)
    result = game.update_settings(room_id, tokens[0], 3)
    assert result["settings"]["spy_count"] == 3

    for bad in (0, 19, "2", True):
        with expect_error(ErrorCode.INVALID_INPUT):
            game.update_settings(room_id, tokens[0], bad)
    with expect_error(ErrorCode.NOT_AUTHORIZED):
        game.update_settings(room_id, tokens[1], 1)


def test_kick_player_renumbers_seats(game, db, make_room):
    room_id, tokens = make_room(4)
    players = players_of(db, room_id)

    with expect_error(ErrorCode.INVALID_ACTION):
        game.kick_player(room_id, tokens[0], players[0].id)
    game.kick_player(room_id, tokens[0], players[1].id)

    remaining = players_of(db, room_id)
    assert [p.name for p in remaining] == ["房主", "玩家2", "玩家3"]
    assert [p.join_order for p in remaining] == [0, 1, 2]


# ── 操作分发 ──────────────────────────────────────────────────────────────

def test_perform_action_dispatch(game, db, make_room):
    room_id, tokens = make_room(3)
    game.perform_action(room_id, tokens[0], GameAction(type="start-game"))
    game.perform_action(room_id, tokens[0], GameAction(type="confirm-word"))
    assert get_room(db, room_id).phase == "description"

    with expect_error(ErrorCode.INVALID_INPUT):
        game.perform_action(room_id, tokens[0], GameAction(type="submit-description"))
    with expect_error(ErrorCode.INVALID_INPUT):
        game.perform_action(room_id, tokens[0], GameAction(type="vote"))
    with expect_error(ErrorCode.INVALID_ACTION):
        game.perform_action(room_id, tokens[0], GameAction(type="dance"))
