import json
from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

from tsr import InvalidInput
from tsr.run.batch import BotJob, JobResult, load_jobs, run_batch

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def _job(bot_id, prices, trade_type="long", target=2.0, preview=False, unlucky=False):
    return {
        "bot": {
            "id": bot_id,
            "user_id": "u-" + bot_id,
            "cryptocurrency": "Ethereum",
            "symbol": "ETH",
            "start_amount": 500,
            "status": "active",
            "created_at": T0.isoformat(),
        },
        "prices": [
            {"symbol": "ETH", "price": p, "timestamp": (T0 + timedelta(minutes=5 * i)).isoformat()}
            for i, p in enumerate(prices)
        ],
        "request": {"trade_type": trade_type, "target_profit_percent": target, "preview": preview, "is_unlucky": unlucky},
    }


@pytest.fixture
def jobs():
    return [
        BotJob.from_dict(_job("a", [100, 101, 99, 103])),
        BotJob.from_dict(_job("b", [100, 100, 100])),
        BotJob.from_dict(_job("c", [100, 102], target=5.0)),
        BotJob.from_dict(_job("d", [100, 98, 99], trade_type="short", unlucky=True)),
    ]


def test_failures_do_not_stop_the_batch(jobs):
    rep = run_batch(jobs)
    assert [r.bot_id for r in rep.results] == ["a", "b", "c", "d"]
    assert [r.ok for r in rep.results] == [True, False, False, True]
    assert rep.results[1].error_kind == "not_resolvable"
    assert rep.results[2].error_kind == "invalid_input"
    assert rep.ok_count == 2
    assert rep.failed_count == 2
    assert len(rep.plans) == 2


def test_job_results_carry_scenario(jobs):
    a = run_batch(jobs).results[0]
    assert a.trade_type == "long"
    assert a.leverage == 2
    assert a.result_percent == pytest.approx(2.0)
    assert a.final_balance == pytest.approx(510.0)
    assert a.points == 4


def test_preview_override(jobs):
    rep = run_batch(jobs, preview=True)
    assert all(p.preview for p in rep.plans)
    assert all(p.trade_record is None for p in rep.plans)
    rep = run_batch(jobs)
    assert all(p.trade_record is not None for p in rep.plans)


def test_frame_and_exports(jobs, tmp_path):
    rep = run_batch(jobs)
    df = rep.to_frame()
    assert list(df.columns) == list(JobResult.__dataclass_fields__)
    assert len(df) == 4

    csv_path = tmp_path / "out" / "batch.csv"
    rep.export_csv(str(csv_path))
    back = pd.read_csv(csv_path)
    assert back["bot_id"].tolist() == ["a", "b", "c", "d"]

    json_path = tmp_path / "out" / "batch.json"
    rep.export_json(str(json_path))
    rows = json.loads(json_path.read_text(encoding="utf-8"))
    assert rows[3]["ok"] is True
    assert rows[3]["result_percent"] < 0


def test_load_jobs(tmp_path):
    p = tmp_path / "jobs.json"
    p.write_text(json.dumps({"jobs": [_job("a", [100, 101, 99, 103])]}), encoding="utf-8")
    jobs = load_jobs(str(p))
    assert len(jobs) == 1
    rep = run_batch(jobs)
    assert rep.ok_count == 1
    assert rep.results[0].bot_id == "a"
    assert rep.results[0].points == 4


def test_job_without_prices():
    raw = _job("a", [100, 101])
    del raw["prices"]
    with pytest.raises(InvalidInput, match="prices"):
        BotJob.from_dict(raw)


def test_load_jobs_rejects_non_list(tmp_path):
    p = tmp_path / "jobs.json"
    p.write_text('"nope"', encoding="utf-8")
    with pytest.raises(InvalidInput):
        load_jobs(str(p))


def test_malformed_job_is_recorded_and_the_rest_still_run(tmp_path):
    bad_bot = _job("bad", [100, 101, 99, 103])
    del bad_bot["bot"]["user_id"]
    bad_prices = _job("worse", [100, 101])
    bad_prices["prices"][1]["timestamp"] = "yesterday-ish"
    p = tmp_path / "jobs.json"
    p.write_text(
        json.dumps([_job("a", [100, 101, 99, 103]), bad_bot, bad_prices, "not a job"]), encoding="utf-8"
    )
    rep = run_batch(load_jobs(str(p)))
    assert [r.ok for r in rep.results] == [True, False, False, False]
    assert [r.error_kind for r in rep.results[1:]] == ["invalid_input"] * 3
    assert rep.results[1].bot_id == "bad"
    assert rep.results[1].symbol == "ETH"
    assert "user_id" in rep.results[1].error
    assert rep.results[3].bot_id == ""
    assert rep.plans[0].bot_id == "a"


def test_raw_dicts_and_parsed_jobs_mix():
    rep = run_batch([_job("a", [100, 101, 99, 103]), BotJob.from_dict(_job("b", [100, 102]))])
    assert [r.bot_id for r in rep.results] == ["a", "b"]
    assert rep.ok_count == 2
