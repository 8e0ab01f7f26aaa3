import io

import pytest

import solver
from protocol import Point, parse_response


@pytest.fixture
def grid(tmp_path, monkeypatch):
    """A U-shaped corridor: down x=0, across y=4, up x=4."""

    cells = [(0, y) for y in range(5)] + [(x, 4) for x in range(1, 5)] + [(4, y) for y in range(4)]
    rows = ["x,y,path"] + [f"{x},{y},1" for x, y in cells]
    (tmp_path / "map_data.csv").write_text("\n".join(rows) + "\n")
    monkeypatch.chdir(tmp_path)
    return cells


def run(argv):
    out, err = io.StringIO(), io.StringIO()
    code = solver.main(argv, stdout=out, stderr=err)
    return code, out.getvalue(), err.getvalue()


@pytest.mark.parametrize("algorithm", ["0", "1"])
def test_finds_corridor_path(grid, algorithm):
    code, out, err = run(["0", "0", "4", "0", algorithm])
    assert code == 0, err
    result = parse_response(out)
    assert result.path[0] == Point(0, 0)
    assert result.path[-1] == Point(4, 0)
    assert set(result.path) <= {Point(*c) for c in grid}
    assert result.visited[0] == Point(0, 0)
    assert out.index("PATH_START") > out.rindex("VISITED")


def test_snaps_to_nearest_walkable_cell(grid):
    code, out, _ = run(["1", "1", "3", "1", "0"])
    assert code == 0
    result = parse_response(out)
    assert result.path[0] == Point(0, 1)
    assert result.path[-1] == Point(4, 1)


def test_usage_and_bad_algorithm(grid):
    code, _, err = run(["1", "2"])
    assert code == 1
    assert "Usage" in err

    code, _, err = run(["0", "0", "4", "0", "7"])
    assert code == 1
    assert "Invalid algorithm" in err


def test_missing_map_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    code, _, err = run(["0", "0", "1", "1", "0"])
    assert code == 1
    assert "map_data.csv" in err


def test_unreachable_goal(tmp_path, monkeypatch):
    (tmp_path / "map_data.csv").write_text("x,y,path\n0,0,1\n5,5,1\n")
    monkeypatch.chdir(tmp_path)
    code, out, err = run(["0", "0", "5", "5", "1"])
    assert code == 1
    assert "No path found." in err
    assert parse_response(out).path == []
