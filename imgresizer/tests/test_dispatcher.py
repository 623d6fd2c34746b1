"""
Tests for StorageDispatcher.
"""

from imgresizer.dispatcher import BackendOutcome, StorageDispatcher
from imgresizer.filenames import ResolvedVariant
from imgresizer.processed_variant import ProcessedVariant


def resolved_set():
    return [
        ResolvedVariant(ProcessedVariant('original', b'o', 800, 600, 'png'), 'a.original.png'),
        ResolvedVariant(ProcessedVariant('small', b's', 320, 240, 'png'), 'resized/small/a.small.png'),
    ]


class TestStorageDispatcher:
    """Tests for StorageDispatcher.dispatch."""

    async def test_success(self, memory_backend, logger):
        """Test locations are recorded for the original and each size."""
        dispatcher = StorageDispatcher({'memory': memory_backend}, logger)

        outcomes = await dispatcher.dispatch(resolved_set())

        outcome = outcomes['memory']
        assert outcome.succeeded
        assert outcome.original == 'memory://a.original.png'
        assert outcome.resized == {'small': 'memory://resized/small/a.small.png'}
        assert [call[2] for call in memory_backend.calls] == ['image/png', 'image/png']

    async def test_one_backend_fails(self, memory_backend, failing_backend, logger):
        """Test a failing backend does not stop the other."""
        dispatcher = StorageDispatcher(
            {'memory': memory_backend, 'broken': failing_backend}, logger
        )

        outcomes = await dispatcher.dispatch(resolved_set())

        assert outcomes['memory'].succeeded
        assert len(memory_backend.calls) == 2
        assert not outcomes['broken'].succeeded
        assert 'Permission denied' in outcomes['broken'].error
        assert outcomes['broken'].error_code == 'ERR_STORAGE'
        # Stops at the first failure within a backend
        assert len(failing_backend.calls) == 1

    async def test_partial_failure_keeps_written_locations(self, backend_factory, logger):
        """Test a backend failing midway still reports what it already stored."""
        backend = backend_factory('flaky', fail_on='.small.')
        dispatcher = StorageDispatcher({'flaky': backend}, logger)

        outcomes = await dispatcher.dispatch(resolved_set())

        outcome = outcomes['flaky']
        assert not outcome.succeeded
        assert outcome.original == 'flaky://a.original.png'
        assert outcome.resized == {}
        data = outcome.to_dict()
        assert data['original'] == 'flaky://a.original.png'
        assert data['code'] == 'ERR_STORAGE'
        assert 'a.small.png' in data['error']

    async def test_unexpected_error_recorded(self, backend_factory, logger):
        """Test non-storage exceptions are recorded, not raised."""
        backend = backend_factory('odd', error=RuntimeError('socket closed'))
        dispatcher = StorageDispatcher({'odd': backend}, logger)

        outcomes = await dispatcher.dispatch(resolved_set())

        assert outcomes['odd'].error_code == 'ERR_STORAGE'
        assert 'socket closed' in outcomes['odd'].error

    async def test_no_variants(self, memory_backend, logger):
        """Test an empty set still reports an outcome per backend."""
        outcomes = await StorageDispatcher({'memory': memory_backend}, logger).dispatch([])

        assert outcomes['memory'].to_dict() == {'original': None, 'resized': {}}


class TestBackendOutcome:
    """Tests for BackendOutcome.to_dict."""

    def test_success_dict(self):
        outcome = BackendOutcome('s3', original='u1', resized={'small': 'u2'})
        assert outcome.to_dict() == {'original': 'u1', 'resized': {'small': 'u2'}}

    def test_error_dict(self):
        outcome = BackendOutcome('s3', original='u1', error='Access Denied', error_code='ERR_STORAGE')
        assert outcome.to_dict() == {
            'original': 'u1',
            'resized': {},
            'error': 'Access Denied',
            'code': 'ERR_STORAGE',
        }
