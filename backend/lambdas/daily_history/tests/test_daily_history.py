import json
from datetime import date, datetime, timezone

import pytest

from daily_history import lambda_function
from daily_history.aggregator import business_date, room_totals, sum_room, write_daily_history


def test_sum_room_two_nodes():
    nodes = {
        'n1': {'lastData': {'electric': 5}},
        'n2': {'lastData': {'electric': 7, 'water': 2}},
    }
    assert sum_room(nodes) == {'electric': 12, 'water': 2}


def test_sum_room_skips_non_numeric():
    nodes = {
        'n1': {'lastData': {'electric': '5', 'water': True}},
        'n2': {'lastData': {'water': 1.5}},
        'n3': {},
    }
    assert sum_room(nodes) == {'water': 1.5}


def test_sum_room_zero_is_reported():
    assert sum_room({'n1': {'lastData': {'electric': 0}}}) == {'electric': 0}


def test_room_totals_skips_rooms_without_metrics():
    buildings = {
        'B1': {
            'rooms': {
                'R1': {'nodes': {'n1': {'lastData': {'electric': 5}}}},
                'R2': {'nodes': {'n2': {'lastData': {'temp': 20}}}},
                'R3': {},
            },
        },
        'B2': {'gateway_id': 'GW2'},
    }
    assert list(room_totals(buildings)) == [('B1', 'R1', {'electric': 5})]


def test_business_date_offset():
    """17:00 UTC ya es el día siguiente en UTC+7"""
    assert business_date(datetime(2024, 3, 1, 17, 0, tzinfo=timezone.utc)) == date(2024, 3, 2)
    assert business_date(datetime(2024, 3, 1, 16, 55)) == date(2024, 3, 1)
    assert business_date(datetime(2024, 3, 1, 16, 55), utc_offset_hours=8) == date(2024, 3, 2)


def test_write_daily_history(memory_store):
    memory_store.data = {
        'buildings': {
            'B1': {
                'rooms': {
                    'R1': {
                        'nodes': {
                            'n1': {'lastData': {'electric': 5}},
                            'n2': {'lastData': {'electric': 7, 'water': 2}},
                        },
                    },
                    'R2': {'nodes': {'n3': {'lastData': {'batt': 90}}}},
                },
            },
        },
    }

    written = write_daily_history(memory_store, date(2024, 5, 6))

    assert written == 1
    rooms = memory_store.data['buildings']['B1']['rooms']
    assert rooms['R1']['history'] == {'2024-05-06': {'electric': 12, 'water': 2}}
    assert 'history' not in rooms['R2']


def test_write_daily_history_is_idempotent(memory_store):
    memory_store.data = {
        'buildings': {'B1': {'rooms': {'R1': {'nodes': {'n1': {'lastData': {'water': 4}}}}}}},
    }
    day = date(2024, 5, 6)

    write_daily_history(memory_store, day)
    memory_store.data['buildings']['B1']['rooms']['R1']['nodes']['n1']['lastData']['water'] = 6
    write_daily_history(memory_store, day)

    history = memory_store.data['buildings']['B1']['rooms']['R1']['history']
    assert history == {'2024-05-06': {'water': 6}}


def test_write_daily_history_without_buildings(memory_store):
    assert write_daily_history(memory_store, date(2024, 5, 6)) == 0


def test_lambda_handler(memory_store, monkeypatch):
    memory_store.data = {
        'buildings': {'B1': {'rooms': {'R1': {'nodes': {'n1': {'lastData': {'electric': 1}}}}}}},
    }
    monkeypatch.setattr(lambda_function, 'store', memory_store)

    result = lambda_handler_call()

    assert result['statusCode'] == 200
    body = json.loads(result['body'])
    assert body['success'] is True
    assert body['written'] == 1
    assert body['date'] in memory_store.data['buildings']['B1']['rooms']['R1']['history']


def test_lambda_handler_store_failure(failing_store, monkeypatch):
    monkeypatch.setattr(lambda_function, 'store', failing_store)

    result = lambda_handler_call()

    assert result['statusCode'] == 500
    assert json.loads(result['body'])['error'] == 'store unavailable'


def lambda_handler_call():
    return lambda_function.lambda_handler({'source': 'aws.events'}, None)


if __name__ == '__main__':
    pytest.main([__file__, '-v', '--tb=short'])
