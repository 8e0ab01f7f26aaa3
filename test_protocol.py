import pytest

from protocol import (
    Algorithm,
    MapPoint,
    ParsedResult,
    PathPoint,
    PathStart,
    Point,
    SolverRequest,
    Visited,
    iter_events,
    parse_map_csv,
    parse_response,
    round_half_away_from_zero,
    serialize_result,
)


SAMPLE = "VISITED 1,1\nVISITED 2,2\nPATH_START\n1,1\n2,2\n3,3\n"


class TestParseResponse:
    def test_sample_response(self):
        result = parse_response(SAMPLE)
        assert result.visited == [Point(1, 1), Point(2, 2)]
        assert result.path == [Point(1, 1), Point(2, 2), Point(3, 3)]
        assert result.found_path

    def test_event_order(self):
        events = list(iter_events(SAMPLE))
        assert events == [
            Visited(Point(1, 1)),
            Visited(Point(2, 2)),
            PathStart(),
            PathPoint(Point(1, 1)),
            PathPoint(Point(2, 2)),
            PathPoint(Point(3, 3)),
        ]

    def test_missing_path_start_means_no_path(self):
        result = parse_response("VISITED 4,5\nVISITED 6,7\n8,9\n")
        assert result.visited == [Point(4, 5), Point(6, 7)]
        assert result.path == []
        assert not result.found_path

    def test_path_start_without_points(self):
        assert parse_response("VISITED 1,2\nPATH_START\n\n").path == []

    def test_malformed_lines_are_dropped(self):
        text = "\n".join(
            [
                "VISITED a,b",
                "VISITED 3",
                "VISITED 1,2",
                "garbage",
                "PATH_START",
                "x,y",
                "no comma here",
                "5,6",
                "7,8,9",
                "",
            ]
        )
        result = parse_response(text)
        assert result.visited == [Point(1, 2)]
        assert result.path == [Point(5, 6)]

    def test_crlf_and_blank_lines(self):
        result = parse_response("VISITED 1,1\r\n\r\nPATH_START\r\n1,1\r\n2,2\r\n")
        assert result.visited == [Point(1, 1)]
        assert result.path == [Point(1, 1), Point(2, 2)]

    def test_visited_token_must_stand_alone(self):
        assert parse_response("VISITEDX 1,1\n").visited == []

    @pytest.mark.parametrize(
        "result",
        [
            ParsedResult(),
            ParsedResult(visited=[Point(0, 0)]),
            ParsedResult(visited=[Point(1, 1), Point(2, 3)], path=[Point(1, 1), Point(4, 4)]),
        ],
    )
    def test_reparse_is_idempotent(self, result):
        assert parse_response(serialize_result(result)) == result

    def test_serialize_matches_solver_format(self):
        assert serialize_result(parse_response(SAMPLE)) == SAMPLE


class TestAlgorithm:
    def test_only_exact_astar_selects_astar(self):
        assert Algorithm.from_query("astar") is Algorithm.ASTAR
        assert Algorithm.from_query("dijkstra") is Algorithm.DIJKSTRA
        assert Algorithm.from_query("ASTAR") is Algorithm.DIJKSTRA
        assert Algorithm.from_query(None) is Algorithm.DIJKSTRA

    def test_solver_codes(self):
        request = SolverRequest(Point(1, 2), Point(3, 4), Algorithm.ASTAR)
        assert request.to_argv() == ["1", "2", "3", "4", "0"]
        assert Algorithm.DIJKSTRA.code == "1"


@pytest.mark.parametrize(
    "value, expected",
    [(0.0, 0), (2.4, 2), (2.5, 3), (3.5, 4), (-2.5, -3), (-2.4, -2), (7.0, 7)],
)
def test_round_half_away_from_zero(value, expected):
    assert round_half_away_from_zero(value) == expected


def test_parse_map_csv_skips_bad_rows():
    text = "x,y,path\n10,20,1\n,5,2\nabc,4,1\n30,40,\n50,60,7\n"
    assert parse_map_csv(text) == [
        MapPoint(10, 20, 1),
        MapPoint(30, 40, None),
        MapPoint(50, 60, 7),
    ]
