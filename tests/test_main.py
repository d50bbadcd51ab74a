"""
Tests for the command-line bracket preview.
"""
import sys

import pytest

import main
from bracket_core.generator import build
from bracket_core.models import Participant


@pytest.fixture
def players_file(tmp_path):
    path = tmp_path / 'players.yaml'
    path.write_text("- Ann\n- Bob\n- Cat\n")
    return path


class TestLoadPlayers:
    def test_seeded_in_file_order(self, players_file):
        players = main.load_players(str(players_file))
        assert [(p.id, p.name, p.seed) for p in players] == [('p1', 'Ann', 1), ('p2', 'Bob', 2), ('p3', 'Cat', 3)]

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'players.yaml'
        path.write_text('')
        assert main.load_players(str(path)) == []

    def test_not_a_list(self, tmp_path):
        path = tmp_path / 'players.yaml'
        path.write_text('name: Ann\n')
        with pytest.raises(ValueError):
            main.load_players(str(path))


class TestMain:
    def test_prints_bracket(self, players_file, monkeypatch, capsys):
        monkeypatch.setattr(sys, 'argv', ['main.py', str(players_file)])
        assert main.main() == 0
        out = capsys.readouterr().out
        assert 'Bracket of 4 (1 byes)' in out
        assert 'Winners Semifinal' in out
        assert 'Losers Final' in out
        assert 'W1-M1: Ann vs BYE 1 -> Ann advances' in out

    def test_too_few_players(self, tmp_path, monkeypatch, capsys):
        path = tmp_path / 'players.yaml'
        path.write_text('- Ann\n')
        monkeypatch.setattr(sys, 'argv', ['main.py', str(path)])
        assert main.main() == 1
        assert 'Need at least 2 players' in capsys.readouterr().out

    def test_describe_links(self):
        graph = build([Participant('p1', 'Ann', 1), Participant('p2', 'Bob', 2)])
        line = main.describe(graph, graph.get('W1-M1'))
        assert line == '  W1-M1: Ann vs Bob  [win: GF, loss: GF]'
