from ddx_dialogue.presentation import console_app


def test_render_choice_question(default_kb):
    text = console_app.render_question(default_kb.question("pain_location"))
    assert "1. Lower back" in text
    assert "4. Knee" in text


def test_read_answer_maps_option_numbers(default_kb):
    assert console_app.read_answer(default_kb.question("pain_location"), "4") == "knee"
    assert console_app.read_answer(default_kb.question("aggravating_factors"), "2, 6") == ["sitting", "stairs"]
    assert console_app.read_answer(default_kb.question("pain_night"), " yes ") == "yes"


def test_main_runs_to_referral(monkeypatch, capsys):
    for name in ("DDX_CATALOG_PATH", "DDX_ADVISORY_URL", "MISTRAL_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    answers = iter(["5"])  # chest pain
    monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
    console_app.main()
    out = capsys.readouterr().out
    assert "[URGENT]" in out


def test_main_runs_to_diagnosis(monkeypatch, capsys):
    for name in ("DDX_CATALOG_PATH", "DDX_ADVISORY_URL", "MISTRAL_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("builtins.input", lambda prompt="": "1")
    console_app.main()
    out = capsys.readouterr().out
    assert "physiotherapy assessment" in out
