"""
Server bootstrap reads its settings from the environment.
"""

from unittest.mock import patch

from fichy_engine import start


@patch("fichy_engine.start.uvicorn.run")
def test_main_runs_uvicorn_from_environment(mock_run, monkeypatch, caplog):
    monkeypatch.setenv("HOST", "127.0.0.1")
    monkeypatch.setenv("PORT", "9001")
    monkeypatch.setenv("LOG_LEVEL", "warning")
    monkeypatch.delenv("RELOAD", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    start.main()

    mock_run.assert_called_once_with(
        "fichy_engine.main:app",
        host="127.0.0.1",
        port=9001,
        reload=False,
        log_level="warning"
    )
    assert "fallback question" in caplog.text


@patch("fichy_engine.start.uvicorn.run")
def test_main_honours_reload(mock_run, monkeypatch):
    monkeypatch.setenv("RELOAD", "True")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")

    start.main()

    assert mock_run.call_args.kwargs["reload"] is True
