import unittest
from unittest.mock import MagicMock

import chess

from piperchess.engine_client import EngineResult
from piperchess.match import MatchConfig, MatchRunner
from piperchess.opponents import EngineMoveError, RandomOpponent, RemoteEngineOpponent


def engine_with(*results: EngineResult) -> RemoteEngineOpponent:
    client = MagicMock()
    client.request_move.side_effect = list(results)
    return RemoteEngineOpponent(client, thinking_ms=1000)


def ok(move: str, depth: int = 10, ms: int = 5) -> EngineResult:
    return EngineResult(success=True, move=move, score=0, depth=depth, nodes=100, nps=1000, time_ms=ms, latency_ms=ms)


class ScriptedOpponent:
    name = "Scripted"

    def __init__(self, moves):
        self.moves = list(moves)

    def choose(self, board):
        return chess.Move.from_uci(self.moves.pop(0))

    def close(self):
        pass


class RemoteEngineOpponentTests(unittest.TestCase):
    def test_choose_sends_fen_and_returns_move(self):
        opp = engine_with(ok("e2e4"))
        board = chess.Board()
        mv = opp.choose(board)
        self.assertEqual(mv, chess.Move.from_uci("e2e4"))
        opp.client.request_move.assert_called_once_with(board.fen(), 1000)
        self.assertEqual(opp.last_result.move, "e2e4")

    def test_failure_raises(self):
        opp = engine_with(EngineResult.failure("Request timeout - engine took too long to respond"))
        with self.assertRaises(EngineMoveError) as ctx:
            opp.choose(chess.Board())
        self.assertIn("timeout", str(ctx.exception))
        self.assertFalse(ctx.exception.result.success)

    def test_unparseable_move_raises(self):
        opp = engine_with(ok("zz99"))
        with self.assertRaises(EngineMoveError):
            opp.choose(chess.Board())

    def test_close_only_when_owning_client(self):
        client = MagicMock()
        RemoteEngineOpponent(client).close()
        client.close.assert_not_called()
        RemoteEngineOpponent(client, owns_client=True).close()
        client.close.assert_called_once()


class RandomOpponentTests(unittest.TestCase):
    def test_legal_move(self):
        board = chess.Board()
        self.assertIn(RandomOpponent(seed=7).choose(board), board.legal_moves)

    def test_no_moves_gives_null(self):
        mated = chess.Board("rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3")
        self.assertEqual(RandomOpponent().choose(mated), chess.Move.null())


class MatchRunnerTests(unittest.TestCase):
    def test_engine_mates_as_black(self):
        engine = engine_with(ok("e7e5", depth=10, ms=4), ok("d8h4", depth=12, ms=8))
        runner = MatchRunner(engine, ScriptedOpponent(["f2f3", "g2g4"]), MatchConfig(engine_color="black"))
        self.assertEqual(runner.play(), "0-1")
        self.assertEqual(runner.termination_reason, "normal_game_end")
        m = runner.metrics()
        self.assertEqual(m["plies_total"], 4)
        self.assertEqual(m["plies_engine"], 2)
        self.assertEqual(m["depth_avg"], 11)
        self.assertEqual(m["latency_ms_avg"], 6)
        self.assertEqual(m["engine_failures"], 0)
        self.assertEqual([r["san"] for r in runner.records], ["f3", "e5", "g4", "Qh4#"])

    def test_engine_failure_loses(self):
        engine = engine_with(EngineResult.failure("Engine unreachable"))
        runner = MatchRunner(engine, ScriptedOpponent([]), MatchConfig(engine_color="white"))
        self.assertEqual(runner.play(), "0-1")
        self.assertEqual(runner.termination_reason, "engine_error")
        self.assertEqual(runner.metrics()["engine_failures"], 1)

    def test_illegal_engine_move_loses(self):
        engine = engine_with(ok("e2e5"))
        runner = MatchRunner(engine, ScriptedOpponent([]), MatchConfig(engine_color="white"))
        self.assertEqual(runner.play(), "0-1")
        self.assertEqual(runner.termination_reason, "illegal_engine_move")
        self.assertEqual(len(runner.board.move_stack), 0)

    def test_illegal_opponent_move_loses(self):
        engine = engine_with(ok("e2e4"))
        runner = MatchRunner(engine, ScriptedOpponent(["e7e4"]), MatchConfig(engine_color="white"))
        self.assertEqual(runner.play(), "1-0")
        self.assertEqual(runner.termination_reason, "illegal_opponent_move")

    def test_max_plies_is_a_draw(self):
        engine = engine_with(ok("e2e4"))
        runner = MatchRunner(engine, ScriptedOpponent(["e7e5"]), MatchConfig(max_plies=2))
        self.assertEqual(runner.play(), "1/2-1/2")
        self.assertEqual(runner.termination_reason, "max_plies_reached")

    def test_thinking_ms_from_config(self):
        engine = engine_with(ok("e2e4"))
        runner = MatchRunner(engine, ScriptedOpponent(["e7e5"]), MatchConfig(max_plies=1, thinking_ms=250))
        runner.play()
        engine.client.request_move.assert_called_once_with(chess.Board().fen(), 250)

    def test_starting_fen(self):
        fen = "7k/8/8/8/8/8/8/K6R w - - 0 1"
        engine = engine_with(ok("h1h2"))
        runner = MatchRunner(engine, ScriptedOpponent(["h8g8"]), MatchConfig(max_plies=2, starting_fen=fen))
        runner.play()
        engine.client.request_move.assert_called_once_with(fen, 1000)

    def test_pgn_headers_and_moves(self):
        engine = engine_with(ok("e2e4"))
        runner = MatchRunner(engine, ScriptedOpponent(["e7e5"]), MatchConfig(max_plies=2))
        runner.play()
        pgn = runner.pgn()
        self.assertIn('[White "Piperlove"]', pgn)
        self.assertIn('[Black "Scripted"]', pgn)
        self.assertIn('[Result "1/2-1/2"]', pgn)
        self.assertIn("1. e4 e5", pgn)
        self.assertIn("max_plies_reached", pgn)

    def test_bad_color_rejected(self):
        with self.assertRaises(ValueError):
            MatchRunner(engine_with(), RandomOpponent(), MatchConfig(engine_color="red"))


if __name__ == "__main__":
    unittest.main()
