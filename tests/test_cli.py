"""
Tests de l'interface en ligne de commande.
"""

import json

import pytest

from kdgeo.cli import main
from kdgeo.io.reader import load_tree


@pytest.fixture
def workspace(tmp_path, geo_points):
    """Fichier de points et configuration dans un répertoire temporaire."""
    points_path = tmp_path / "points.json"
    points_path.write_text(json.dumps(geo_points), encoding="utf-8")

    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "search:\n"
        "  max_distance: 500\n"
        "  weights: {Lat: 364000, Long: 288200}\n"
        f"files:\n  data_dir: {tmp_path}\n  trees_dir: {tmp_path}\n",
        encoding="utf-8",
    )
    return tmp_path, str(config_path)


def test_build_command(workspace):
    tmp_path, config = workspace
    tree_path = tmp_path / "geo.kdg"

    assert main(["--config", config, "build", str(tmp_path / "points.json"), str(tree_path)]) == 0

    tree = load_tree(str(tree_path), verbose=False)
    assert len(tree) == 8
    assert tree.dimensions == ("Lat", "Long")


def test_build_command_uses_configured_default_paths(workspace):
    tmp_path, config = workspace
    assert main(["--config", config, "build"]) == 0
    assert (tmp_path / "tree.kdg").exists()


def test_neighbors_command(workspace):
    tmp_path, config = workspace
    out_path = tmp_path / "neighbors.json"

    assert main(["--config", config, "neighbors", str(tmp_path / "points.json"), str(out_path)]) == 0

    rows = {row["id"]: row for row in json.loads(out_path.read_text(encoding="utf-8"))}
    assert rows["A"]["neighbor_id"] == "B"
    assert rows["B"]["neighbor_id"] == "A"
    assert rows["H"]["neighbor_id"] is None


def test_query_command_with_trace(workspace, capsys):
    tmp_path, config = workspace
    points = str(tmp_path / "points.json")

    code = main(["--config", config, "query", points, "--at", "Lat=33.7765", "--at", "Long=-84.3921",
                 "--self_id", "A", "--trace"])
    out = capsys.readouterr().out

    assert code == 0
    assert "Trace de la recherche" in out
    assert "Plus proche voisin: 'B'" in out


def test_query_command_without_neighbor(workspace, capsys):
    tmp_path, config = workspace
    code = main(["--config", config, "query", str(tmp_path / "points.json"),
                 "--at", "Lat=33.752103", "--at", "Long=-84.138643", "--self_id", "H"])
    assert code == 0
    assert "Aucun voisin" in capsys.readouterr().out


def test_query_command_reports_errors(workspace, capsys):
    tmp_path, config = workspace
    points = str(tmp_path / "points.json")

    assert main(["--config", config, "query", points, "--at", "Lat=1"]) == 1
    assert "❌ Erreur" in capsys.readouterr().out

    assert main(["--config", config, "query", points, "--at", "Lat=1", "--at", "Long=2",
                 "--weight", "Lat=0"]) == 1
    assert main(["--config", config, "query", points, "--at", "Lat=abc"]) == 1


def test_check_command(workspace):
    tmp_path, config = workspace
    assert main(["--config", config, "check", str(tmp_path / "points.json"), "--queries", "10"]) == 0


def test_no_command_prints_help(workspace, capsys):
    _, config = workspace
    assert main(["--config", config]) == 0
    assert "usage" in capsys.readouterr().out


def test_commands_on_tree_without_geographic_dimensions(tmp_path, capsys):
    """Les poids Lat/Long par défaut ne s'appliquent pas à un arbre sur d'autres dimensions."""
    points = [
        {"id": "p0", "x": 0.0, "y": 0.0},
        {"id": "p1", "x": 1.0, "y": 0.0},
        {"id": "p2", "x": 10.0, "y": 10.0},
    ]
    points_path = tmp_path / "xy.json"
    points_path.write_text(json.dumps(points), encoding="utf-8")
    config_path = tmp_path / "config.yaml"
    config_path.write_text("build_tree:\n  dimensions: [x, y]\n", encoding="utf-8")
    config = str(config_path)
    out_path = tmp_path / "neighbors.json"

    assert main(["--config", config, "neighbors", str(points_path), str(out_path), "--max_distance", "2"]) == 0
    rows = {row["id"]: row for row in json.loads(out_path.read_text(encoding="utf-8"))}
    assert rows["p0"]["neighbor_id"] == "p1"
    assert rows["p2"]["neighbor_id"] is None

    assert main(["--config", config, "query", str(points_path), "--at", "x=0", "--at", "y=0",
                 "--self_id", "p0", "--max_distance", "2"]) == 0
    assert "Plus proche voisin: 'p1'" in capsys.readouterr().out

    assert main(["--config", config, "check", str(points_path), "--queries", "6", "--max_distance", "2"]) == 0

    # Un poids explicite sur une dimension inconnue reste une erreur
    assert main(["--config", config, "query", str(points_path), "--at", "x=0", "--at", "y=0",
                 "--max_distance", "2", "--weight", "Lat=2"]) == 1
    assert "❌ Erreur" in capsys.readouterr().out
