"""
Unit tests for the expiring query cache and cached request views.
"""
import pytest
from dataclasses import replace
from datetime import timedelta

from turnofacil.models import RequestStatus, Role
from turnofacil.services.query_cache import QueryCache, RequestQueryService, snapshot_fingerprint
from turnofacil.services.query_filters import RequestFilters


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self):
        self.value = 1000.0

    def __call__(self):
        return self.value

    def advance(self, seconds):
        self.value += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def cache(fake_clock):
    return QueryCache(ttl=60, clock=fake_clock)


class TestQueryCache:

    @pytest.mark.unit
    def test_entries_expire(self, cache, fake_clock):
        cache.set('a', 1)
        assert cache.get('a') == 1
        fake_clock.advance(59)
        assert 'a' in cache
        fake_clock.advance(1)
        assert cache.get('a') is None
        assert len(cache) == 0

    @pytest.mark.unit
    def test_per_entry_ttl(self, cache, fake_clock):
        cache.set('short', 1, ttl=5)
        cache.set('long', 2)
        fake_clock.advance(10)
        assert cache.get('short', 'gone') == 'gone'
        assert cache.get('long') == 2

    @pytest.mark.unit
    def test_get_or_compute_runs_once(self, cache):
        calls = []

        def compute():
            calls.append(1)
            return {'total': 3}

        assert cache.get_or_compute('k', compute) == {'total': 3}
        assert cache.get_or_compute('k', compute) == {'total': 3}
        assert len(calls) == 1
        assert cache.stats()['hits'] == 1
        assert cache.stats()['misses'] == 1

    @pytest.mark.unit
    def test_falsy_values_are_cached(self, cache):
        calls = []
        cache.get_or_compute('empty', lambda: calls.append(1) or [])
        cache.get_or_compute('empty', lambda: calls.append(1) or [])
        assert len(calls) == 1

    @pytest.mark.unit
    def test_invalidate_by_prefix(self, cache):
        cache.set('requests:a', 1)
        cache.set('requests:b', 2)
        cache.set('metrics:a', 3)
        assert cache.invalidate('requests:') == 2
        assert len(cache) == 1

    @pytest.mark.unit
    def test_sweep(self, cache, fake_clock):
        cache.set('a', 1)
        cache.set('b', 2, ttl=120)
        fake_clock.advance(61)
        assert cache.sweep() == 1
        assert len(cache) == 1
        cache.clear()
        assert len(cache) == 0


class TestRequestQueryService:

    @pytest.mark.unit
    def test_query_is_scoped_and_cached(self, supervisor, request_factory, cache, now):
        requests = [request_factory(id='R1'), request_factory(id='R2', location_id='LOC2')]
        service = RequestQueryService(supervisor, cache)

        first = service.query(requests, now=now)
        second = service.query(requests, now=now)

        assert [r['id'] for r in first['requests']] == ['R1']
        assert first['total'] == 1
        assert first['summary'] == 'Sin filtros'
        assert second is first
        assert cache.stats()['hits'] == 1

    @pytest.mark.unit
    def test_changed_snapshot_is_not_served_stale(self, supervisor, request_factory, cache, now):
        service = RequestQueryService(supervisor, cache)
        request = request_factory()
        service.query([request], now=now)

        approved = replace(request, status=RequestStatus.APPROVED, updated_at=now)
        view = service.query([approved], now=now)

        assert view['requests'][0]['status'] == 'approved'

    @pytest.mark.unit
    def test_edited_text_refreshes_search(self, supervisor, request_factory, cache, now):
        service = RequestQueryService(supervisor, cache)
        filters = RequestFilters(search_term='vacaciones')

        before = service.query([request_factory(reason='Cita médica')], filters, now=now)
        after = service.query([request_factory(reason='Vacaciones familiares')], filters, now=now)

        assert before['total'] == 0
        assert after['total'] == 1

    @pytest.mark.unit
    def test_reassigned_actor_gets_own_view(self, supervisor, actor_factory, request_factory, cache, now):
        requests = [request_factory()]
        promoted = actor_factory(id=supervisor.id, role=Role.BUSINESS_ADMIN, location_id=supervisor.location_id)

        first = RequestQueryService(supervisor, cache).query(requests, now=now)
        second = RequestQueryService(promoted, cache).query(requests, now=now)

        assert second is not first
        assert cache.stats()['misses'] == 2
        assert len(cache) == 2

    @pytest.mark.unit
    def test_preset_query(self, supervisor, request_factory, cache, now):
        requests = [request_factory(id='R1'), request_factory(id='R2', status=RequestStatus.REJECTED)]
        view = RequestQueryService(supervisor, cache).query(requests, preset='rejected_requests', now=now)
        assert [r['id'] for r in view['requests']] == ['R2']
        assert view['active_filters'] == 1

    @pytest.mark.unit
    def test_metrics_and_invalidate(self, admin, request_factory, cache, now):
        service = RequestQueryService(admin, cache)
        metrics = service.metrics([request_factory()], now=now)
        assert metrics['total_requests'] == 1
        service.query([request_factory()], now=now)
        assert service.invalidate() == 2
        assert len(cache) == 0

    @pytest.mark.unit
    def test_metrics_are_recomputed_the_next_day(self, admin, request_factory, cache, now):
        service = RequestQueryService(admin, cache)
        requests = [request_factory()]

        today = service.metrics(requests, now=now)
        service.metrics(requests, now=now)
        tomorrow = service.metrics(requests, now=now + timedelta(days=1))

        assert tomorrow is not today
        assert cache.stats()['hits'] == 1
        assert cache.stats()['misses'] == 2

    @pytest.mark.unit
    def test_fingerprint_ignores_order(self, request_factory):
        first, second = request_factory(id='R1'), request_factory(id='R2')
        assert snapshot_fingerprint([first, second]) == snapshot_fingerprint([second, first])
        assert len(snapshot_fingerprint([first])) == 16
