"""
Test suite for sequence module

Tests identifier formatting, monotonic allocation and advancing past
loaded identifiers.
"""

import pytest
import threading

from bankapp.sequence import IdSequence


class TestIdSequence:
    """Test IdSequence allocation"""

    def test_sequential_ids(self):
        sequence = IdSequence("ACC")

        assert sequence.next_id() == "ACC001"
        assert sequence.next_id() == "ACC002"
        assert sequence.current == 2

    def test_ids_grow_past_width(self):
        """Test numbers beyond the padded width stay unique"""
        sequence = IdSequence("T", width=1, start=8)

        assert sequence.next_id() == "T9"
        assert sequence.next_id() == "T10"

    def test_advance_only_moves_forward(self):
        sequence = IdSequence("TXN", start=5)

        sequence.advance_to(3)
        assert sequence.current == 5

        sequence.advance_to(10)
        assert sequence.next_id() == "TXN011"

    def test_observe_loaded_identifier(self):
        """Test observing stored ids advances the counter"""
        sequence = IdSequence("ACC")

        sequence.observe("ACC010")
        sequence.observe("ACC004")
        sequence.observe("TXN050")  # Different prefix, ignored

        assert sequence.next_id() == "ACC011"

    def test_parse(self):
        sequence = IdSequence("CUST")

        assert sequence.parse("CUST007") == 7
        assert sequence.parse("ACC007") is None
        assert sequence.parse("CUST") is None
        assert sequence.parse("") is None

    def test_reset(self):
        sequence = IdSequence("ACC")
        sequence.next_id()
        sequence.reset()

        assert sequence.next_id() == "ACC001"

    def test_invalid_arguments(self):
        with pytest.raises(ValueError, match="Width"):
            IdSequence("ACC", width=0)
        with pytest.raises(ValueError, match="Start"):
            IdSequence("ACC", start=-1)

    def test_concurrent_allocation_is_unique(self):
        """Test ids allocated from many threads never collide"""
        sequence = IdSequence("TXN")
        allocated = []
        lock = threading.Lock()

        def worker():
            ids = [sequence.next_id() for _ in range(100)]
            with lock:
                allocated.extend(ids)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(allocated) == 800
        assert len(set(allocated)) == 800
        assert sequence.current == 800
