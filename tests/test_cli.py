"""命令行测试"""

from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from dream_weaver import cli
from dream_weaver.core.models import AppState, GenerationContext, StoryPage, StoryStructure
from dream_weaver.utils.config import Settings

runner = CliRunner()


@pytest.fixture
def settings(tmp_path):
    return Settings(openai_api_key="test-key", output_dir=str(tmp_path))


@pytest.fixture
def finished():
    return GenerationContext(
        state=AppState.READING,
        book=StoryStructure(
            title="Gigi et l'étoile",
            pages=[
                StoryPage(
                    page_number=i + 1,
                    text=f"Gigi lève la tête, page {i + 1}.",
                    image_prompt="giraffe",
                    image_url=f"https://picsum.photos/800/800?random={i}",
                )
                for i in range(3)
            ],
        ),
    )


class TestGenerateCommand:
    def test_writes_markdown_and_html(self, settings, finished, tmp_path):
        with (
            patch.object(cli, "get_settings", return_value=settings),
            patch.object(cli, "_generate_async", new_callable=AsyncMock, return_value=finished),
            patch.object(
                cli.PDFExporter, "export", return_value=tmp_path / "Gigi_et_l__toile.pdf"
            ) as mock_export,
        ):
            result = runner.invoke(
                cli.app,
                ["generate", "Gigi la Girafe", "cherche une étoile", "--pages", "3", "--markdown"],
            )

        assert result.exit_code == 0, result.output
        mock_export.assert_called_once()
        markdown = (tmp_path / "Gigi_et_l__toile.md").read_text(encoding="utf-8")
        assert markdown.startswith("# Gigi et l'étoile")
        assert "![Page 2](https://picsum.photos/800/800?random=1)" in markdown
        assert (tmp_path / "Gigi_et_l__toile.html").exists()

    def test_markdown_is_opt_in(self, settings, finished, tmp_path):
        with (
            patch.object(cli, "get_settings", return_value=settings),
            patch.object(cli, "_generate_async", new_callable=AsyncMock, return_value=finished),
            patch.object(cli.PDFExporter, "export", return_value=tmp_path / "x.pdf"),
        ):
            result = runner.invoke(
                cli.app, ["generate", "Gigi la Girafe", "cherche une étoile", "--no-html"]
            )

        assert result.exit_code == 0, result.output
        assert not list(tmp_path.glob("*.md"))
        assert not list(tmp_path.glob("*.html"))

    def test_failed_generation_exits_with_error(self, settings):
        failed = GenerationContext(state=AppState.ERROR, error="malformed JSON")
        with (
            patch.object(cli, "get_settings", return_value=settings),
            patch.object(cli, "_generate_async", new_callable=AsyncMock, return_value=failed),
        ):
            result = runner.invoke(cli.app, ["generate", "Gigi la Girafe", "cherche une étoile"])

        assert result.exit_code == 1
        assert "malformed JSON" in result.output

    def test_unsupported_language(self, settings):
        with patch.object(cli, "get_settings", return_value=settings):
            result = runner.invoke(
                cli.app, ["generate", "Gigi la Girafe", "cherche une étoile", "--lang", "de"]
            )

        assert result.exit_code == 1


class TestListCommands:
    def test_characters(self):
        result = runner.invoke(cli.app, ["characters"])
        assert result.exit_code == 0
        assert "Gigi la Girafe" in result.output

    def test_styles(self):
        result = runner.invoke(cli.app, ["styles"])
        assert result.exit_code == 0
        assert "Beatrix Potter (Aquarelle)" in result.output
