"""
End-to-end compilation tests

Tests the full pipeline: page source → Parser → Compiler → HTML/JSON output,
and multi-page builds through SiteBuilder and the CLI pipeline stages.
"""

import json
import pytest
from pathlib import Path
import tempfile

from pagemark.lib.builder import SiteBuilder
from pagemark.lib.compiler import Compiler
from pagemark.lib.errors import UnresolvedReferenceError
from pagemark.lib.parser import Parser
from pagemark.models import ProgramState


PAGE = """---
title: Getting Started
description: Instrument a sample app
weight: 2
---

# Getting Started

Read about [traces][] & <spans>.

<?code-excerpt path-base="examples/java"?>
<?code-excerpt "Main.java"?>
```java
public class Main {}
```

{{% alert title="Careful" color="warning" %}}
Check the `JAVA_HOME` variable.
{{% /alert %}}

3. Third
4. Fourth

## Setup

## Setup

[traces]: /docs/concepts/signals/traces/
"""


class TestPageCompilation:
    """Test compiling a single page"""

    def test_html_document(self):
        """Compile a page with every block type"""
        page = Parser(PAGE).parse()

        with tempfile.TemporaryDirectory() as tmpdir:
            output_file = Path(tmpdir) / "getting-started.html"
            result = Compiler(page).compile(output_file)

            assert result['status'] is True
            assert result['block_count'] == len(page.body)
            assert output_file.exists()

            html = output_file.read_text()

        assert '<title>Getting Started</title>' in html
        assert '<meta name="description" content="Instrument a sample app">' in html
        assert '<h1 id="getting-started">Getting Started</h1>' in html
        assert '<a href="/docs/concepts/signals/traces/">traces</a> &amp; &lt;spans&gt;.' in html
        assert 'data-language="java"' in html
        assert 'data-source="examples/java/Main.java"' in html
        assert 'class="highlight"' in html
        assert '<div class="alert alert-warning" role="alert">' in html
        assert '<h4 class="alert-heading">Careful</h4>' in html
        assert '<code>JAVA_HOME</code>' in html
        assert '<ol start="3">' in html
        assert '<li>Third</li>' in html
        assert '<h2 id="setup">Setup</h2>' in html
        assert '<h2 id="setup-2">Setup</h2>' in html
        assert '[traces]:' not in html
        assert '<?code-excerpt' not in html

    def test_unknown_language_falls_back(self):
        """Fences in languages Pygments does not know still render"""
        page = Parser("```nosuchlang\n<raw>\n```").parse()
        html = Compiler(page).compile()['output']

        assert 'data-language="nosuchlang"' in html
        assert '&lt;raw&gt;' in html

    def test_nested_list_html(self):
        """Items with more than one block render their blocks"""
        page = Parser("- parent\n  - child").parse()
        html = Compiler(page).compile()['output']
        assert '<li>\n<p>parent</p>\n<ul>\n<li>child</li>\n</ul>\n</li>' in html

    def test_unresolved_reference_at_render(self):
        """A page compiled without resolution fails on its first reference"""
        page = Parser("See [missing][].", resolve=False).parse()
        with pytest.raises(UnresolvedReferenceError):
            Compiler(page).compile()

    def test_json_tree(self):
        """JSON output is the tagged page tree"""
        page = Parser(PAGE).parse()
        data = json.loads(Compiler(page).compile(output_format="json")['output'])

        assert data['type'] == 'Page'
        assert data['metadata']['title'] == 'Getting Started'
        assert data['metadata']['weight'] == 2
        types = [block['type'] for block in data['body']]
        assert types[:3] == ['Heading', 'Paragraph', 'CodeFence']
        callout = data['body'][3]
        assert callout['type'] == 'CalloutBox'
        assert callout['severity'] == 'warning'
        assert data['body'][2]['source_excerpt_path'] == 'examples/java/Main.java'


class TestSiteBuild:
    """Test multi-page builds"""

    def pages_write(self, root: Path) -> None:
        (root / "sub").mkdir()
        (root / "good.md").write_text("---\ntitle: Good\nweight: 2\n---\nHello.\n")
        (root / "sub" / "first.md").write_text("---\ntitle: First\nweight: 1\n---\nFirst page.\n")
        (root / "broken.md").write_text("---\ntitle: Broken\n---\nIntro\n\n```java\nclass A {}\n")
        (root / "unresolved.md").write_text("---\ntitle: Unresolved\n---\nSee [nowhere][].\n")

    def test_errors_isolated_per_page(self):
        """Broken pages fail alone; the rest are built"""
        with tempfile.TemporaryDirectory() as tmpdir:
            inputdir = Path(tmpdir) / "in"
            outputdir = Path(tmpdir) / "out"
            inputdir.mkdir()
            self.pages_write(inputdir)

            results = SiteBuilder(inputdir, outputdir).build()
            by_name = {result.source.name: result for result in results}

            assert len(results) == 4
            assert by_name["good.md"].ok
            assert by_name["first.md"].ok
            assert (outputdir / "good.html").exists()
            assert (outputdir / "sub" / "first.html").exists()
            assert not (outputdir / "broken.html").exists()

            broken = by_name["broken.md"].error
            assert broken.kind == "UnterminatedBlockError"
            assert broken.line_number == 6
            assert str(broken).startswith(f"{inputdir / 'broken.md'}:6: UnterminatedBlockError:")

            unresolved = by_name["unresolved.md"].error
            assert unresolved.kind == "UnresolvedReferenceError"
            assert unresolved.line_number == 4

            good_html = (outputdir / "good.html").read_text()
            first_html = (outputdir / "sub" / "first.html").read_text()

        # Navigation lists only pages that parsed, ordered by weight
        assert good_html.index("sub/first.html") < good_html.index('href="good.html"')
        assert "Broken" not in good_html
        assert 'href="../good.html"' in first_html

    def test_json_output(self):
        """--outputFormat json writes .json files"""
        with tempfile.TemporaryDirectory() as tmpdir:
            inputdir = Path(tmpdir) / "in"
            inputdir.mkdir()
            (inputdir / "a.md").write_text("---\ntitle: A\n---\nText\n")

            results = SiteBuilder(inputdir, Path(tmpdir) / "out", output_format="json").build()

            assert results[0].output_file.name == "a.json"
            data = json.loads(results[0].output_file.read_text())
            assert data['metadata']['title'] == "A"


class TestPipeline:
    """Test the CLI pipeline stages"""

    def test_failed_page_exits_nonzero(self, capsys):
        """results_report prints file:line: Kind and exits 1"""
        from pagemark.__main__ import env_check, pages_build, results_report
        from pagemark.models import pipeline

        with tempfile.TemporaryDirectory() as tmpdir:
            inputdir = Path(tmpdir) / "in"
            inputdir.mkdir()
            (inputdir / "ok.md").write_text("---\ntitle: OK\n---\nFine.\n")
            (inputdir / "bad.md").write_text("---\ntitle: Bad\n---\n{{% alert %}}\nopen\n")

            state = ProgramState(inputdir=inputdir, outputdir=Path(tmpdir) / "out", verbosity=0)
            with pytest.raises(SystemExit) as exc_info:
                pipeline(state, env_check, pages_build, results_report)

        assert exc_info.value.code == 1
        assert "bad.md:4: UnterminatedBlockError:" in capsys.readouterr().err

    def test_clean_build_returns_state(self):
        """A build with no failures completes the pipeline"""
        from pagemark.__main__ import env_check, pages_build, results_report
        from pagemark.models import pipeline

        with tempfile.TemporaryDirectory() as tmpdir:
            inputdir = Path(tmpdir) / "in"
            inputdir.mkdir()
            (inputdir / "ok.md").write_text("---\ntitle: OK\n---\nFine.\n")

            state = ProgramState(inputdir=inputdir, outputdir=Path(tmpdir) / "out", verbosity=0)
            final = pipeline(state, env_check, pages_build, results_report)

            assert final.envOK is True
            assert [result.ok for result in final.buildResults] == [True]
