"""Tests for the visited set."""

from concurrent.futures import ThreadPoolExecutor

from depthcrawl.crawler.visited import VisitedSet


class TestVisitedSet:

    def test_first_claim_wins(self):
        visited = VisitedSet()
        assert visited.try_claim("http://a.test/") is True
        assert visited.try_claim("http://a.test/") is False
        assert "http://a.test/" in visited
        assert len(visited) == 1
        assert visited.claims == 1
        assert visited.rejections == 1

    def test_initial_contents_are_already_claimed(self):
        visited = VisitedSet(["http://a.test/"])
        assert visited.try_claim("http://a.test/") is False

    def test_snapshot_is_a_copy(self):
        visited = VisitedSet()
        visited.try_claim("http://a.test/")
        snapshot = visited.snapshot()
        visited.try_claim("http://a.test/x")
        assert snapshot == frozenset({"http://a.test/"})
        assert set(visited) == {"http://a.test/", "http://a.test/x"}

    def test_concurrent_claims_are_exclusive(self):
        """Each URI is won by exactly one of many competing threads."""
        visited = VisitedSet()
        uris = [f"http://a.test/{i % 50}" for i in range(2000)]

        with ThreadPoolExecutor(max_workers=16) as pool:
            outcomes = list(pool.map(visited.try_claim, uris))

        assert sum(outcomes) == 50
        assert len(visited) == 50
        assert visited.claims == 50
        assert visited.rejections == 1950
