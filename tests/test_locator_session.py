from communitymap.locator.model import Community, Coordinate
from communitymap.locator.session import LocatorSession

USER = Coordinate(lat=-23.5505, lon=-46.6333)
COMMUNITIES = [
    Community(id="sp", city="São Paulo", state="SP", neighborhood="Centro"),
    Community(id="rj", city="Rio de Janeiro", state="RJ", neighborhood="Centro"),
]


def test_waits_for_both_inputs_in_any_order() -> None:
    session = LocatorSession()
    assert session.set_communities(COMMUNITIES) is None
    assert session.view is None

    view = session.set_user_location(USER)
    assert view is not None
    assert session.nearest is not None
    assert session.nearest.id == "sp"
    assert session.recompute_count == 1

    other = LocatorSession()
    assert other.set_user_location(USER) is None
    assert other.set_communities(COMMUNITIES) is not None


def test_recomputes_on_every_change() -> None:
    session = LocatorSession()
    session.set_communities(COMMUNITIES)
    session.set_user_location(USER)

    session.set_user_location(Coordinate(lat=-22.9, lon=-43.2))
    assert session.nearest is not None
    assert session.nearest.id == "rj"

    session.set_communities([])
    assert session.nearest is None
    assert session.recompute_count == 3


def test_closed_session_discards_late_results() -> None:
    session = LocatorSession()
    session.set_communities(COMMUNITIES)
    session.close()
    assert session.set_user_location(USER) is None
    assert session.view is None
    assert session.recompute_count == 0


def test_view_options_are_forwarded() -> None:
    session = LocatorSession(view_options={"boundary_radius_km": 1.0, "boundary_points": 16})
    session.set_communities(COMMUNITIES)
    view = session.set_user_location(USER)
    assert view is not None
    assert view.boundary is not None
    assert len(view.boundary["geometry"]["coordinates"][0]) == 17
    assert view.boundary["properties"]["radius_km"] == 1.0
