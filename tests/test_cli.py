import json

import pytest

from tripdesk.cli import main


@pytest.fixture(autouse=True)
def keep_test_logging(monkeypatch):
    monkeypatch.setattr("tripdesk.cli.configure_logging", lambda level=None: None)


def test_capacity_set_prints_slot(capsys):
    main(['--backend', 'memory', 'capacity', 'set', '2025-12-20', '--capacity', '12'])

    out = capsys.readouterr().out
    assert 'Capacity saved' in out
    slot = json.loads(out[out.index('{'):])
    assert slot['capacity'] == 12
    assert slot['booked'] == 0


def test_capacity_show_unconfigured(capsys):
    main(['--backend', 'memory', 'capacity', 'show', '2025-12-20'])
    assert 'No capacity configured for 2025-12-20' in capsys.readouterr().out


def test_convert_unknown_lead_exits_with_payload(capsys):
    with pytest.raises(SystemExit) as exc:
        main(['--backend', 'memory', 'convert', 'missing-lead'])

    assert exc.value.code == 1
    out = capsys.readouterr().out
    payload = json.loads(out[out.index('{'):])
    assert payload['code'] == 'precondition_failed'
    assert payload['retryable'] is False


def test_leads_add_and_list(capsys):
    main(['--backend', 'memory', 'leads', 'add', '--name', 'Sara', '--email', 'sara@example.com',
          '--destination', 'Baku'])
    out = capsys.readouterr().out
    assert 'Lead created' in out

    main(['--backend', 'memory', 'leads', 'list'])
    assert 'Found 0 lead(s)' in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 0
    assert 'usage: tripdesk' in capsys.readouterr().out
