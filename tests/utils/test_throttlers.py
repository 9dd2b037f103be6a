"""Tests for inventory_api/utils/throttlers.py"""

from unittest.mock import MagicMock

import pytest

from inventory_api.utils.throttlers import (
    is_throttled,
    next_backoff,
    retry_after_seconds,
    sleep_throttle,
    throttle_from_extensions,
)


class TestRetryAfterSeconds:
    @pytest.mark.parametrize(
        "header, expected",
        [
            ("1", 1.0),
            ("2.5", 2.5),
            ("0", 0.0),
            ("30", 5.0),
            (None, 2.0),
            ("", 2.0),
            ("soon", 2.0),
            ("-4", 2.0),
            ("nan", 2.0),
        ],
    )
    def test_values(self, header, expected):
        assert retry_after_seconds(header, default=2.0, cap=5.0) == expected


class TestNextBackoff:
    def test_grows_then_caps(self):
        assert next_backoff(2.0, cap=5.0) == pytest.approx(3.2)
        assert next_backoff(3.2, cap=5.0) == 5.0


class TestSleepThrottle:
    def test_sleeps(self):
        sleep = MagicMock()

        sleep_throttle(1.5, sleep=sleep, url="x")

        sleep.assert_called_once_with(1.5)

    @pytest.mark.parametrize("seconds", [0, -1])
    def test_no_sleep_for_non_positive(self, seconds):
        sleep = MagicMock()

        sleep_throttle(seconds, sleep=sleep)

        sleep.assert_not_called()


class TestGraphqlThrottle:
    def test_wait_from_cost(self):
        payload = {
            "extensions": {
                "cost": {
                    "requestedQueryCost": 200,
                    "throttleStatus": {"currentlyAvailable": 100, "restoreRate": 50},
                }
            }
        }

        wait, metrics = throttle_from_extensions(payload)

        assert wait == 2.0
        assert metrics == {"requested": 200.0, "available": 100.0, "restore_rate": 50.0}

    def test_enough_budget(self):
        payload = {
            "extensions": {
                "cost": {"requestedQueryCost": 10, "throttleStatus": {"currentlyAvailable": 900, "restoreRate": 50}}
            }
        }

        assert throttle_from_extensions(payload)[0] == 0.0

    def test_missing_extensions(self):
        assert throttle_from_extensions({})[0] == 0.0

    def test_is_throttled(self):
        assert is_throttled([{"message": "x", "extensions": {"code": "THROTTLED"}}])
        assert is_throttled([{"message": "Throttled"}])
        assert not is_throttled([{"message": "Field 'foo' doesn't exist"}, "junk"])
        assert not is_throttled([])
