"""Tests for the XSS protection check."""

from pathlib import Path

import pytest

from security_validator.scanners.common import SourceFile
from security_validator.scanners.xss import XSSCheck, unescaped_input_issue, verify_sanitization


def rules(result, rule):
    return [f for f in result.findings if f.rule == rule]


def make_source(content: str) -> SourceFile:
    return SourceFile.from_text(Path("Post.tsx"), "components/Post.tsx", "web/src/components/Post.tsx", content)


class TestDangerousHtml:
    """Test dangerouslySetInnerHTML sanitization detection."""

    def test_unsanitized_value_is_flagged(self, project):
        project.write("components/Post.tsx", """
            export function Post({ post }) {
              return <div dangerouslySetInnerHTML={{ __html: post.body }} />;
            }
        """)

        findings = rules(project.run(XSSCheck), "xss")

        assert len(findings) == 1
        assert findings[0].line == 2
        assert findings[0].message == "dangerouslySetInnerHTML used without verified sanitization"
        assert "DOMPurify" in findings[0].remediation

    def test_inline_sanitizer_call(self, project):
        project.write("components/Post.tsx", """
            import DOMPurify from 'dompurify';

            export function Post({ post }) {
              return <div dangerouslySetInnerHTML={{ __html: DOMPurify.sanitize(post.body) }} />;
            }
        """)

        assert project.run(XSSCheck).passed

    def test_sanitized_variable_assigned_earlier(self):
        source = make_source(
            "const html = DOMPurify.sanitize(raw);\n"
            "return <div dangerouslySetInnerHTML={{ __html: html }} />;\n"
        )

        assert verify_sanitization(source, 2, source.line(2))

    def test_sanitized_name_with_sanitizer_in_file(self):
        source = make_source(
            "const safeMarkup = useMemo(() => purify(raw), [raw]);\n"
            "return <div dangerouslySetInnerHTML={{ __html: safeMarkup }} />;\n"
        )

        assert verify_sanitization(source, 2, source.line(2))

    def test_sanitizing_wrapper(self):
        line = "<div dangerouslySetInnerHTML={cleanMarkup(body)} />"
        source = make_source(line)

        assert verify_sanitization(source, 1, line)

    def test_jsx_line_marker_waives(self, project):
        project.write("app/terms/page.tsx", """
            export default function TermsPage({ html }) {
              return (
                <main>
                  {/* security-ignore: static markup from CMS */}
                  <div dangerouslySetInnerHTML={{ __html: html }} />
                </main>
              );
            }
        """)

        result = project.run(XSSCheck)

        assert result.passed
        assert [(w.line, w.reason) for w in result.waivers] == [(5, "static markup from CMS")]

    def test_commented_out_usage_is_ignored(self, project):
        project.write("components/Post.tsx", """
            export function Post({ post }) {
              // <div dangerouslySetInnerHTML={{ __html: post.body }} />
              return <div>{post.body}</div>;
            }
        """)

        assert project.run(XSSCheck).passed


class TestUnescapedInput:
    """Test unsafe DOM and code-execution sinks."""

    @pytest.mark.parametrize("line,message", [
        ("el.innerHTML = message;", "innerHTML assignment without sanitization"),
        ("el.outerHTML = template;", "outerHTML assignment without sanitization"),
        ("document.write(banner);", "document.write usage (potential XSS vector)"),
        ("<a href={'/search?q=' + searchParams.q}>Search</a>", "URL parameter used in href without encoding"),
        ("const result = eval(expression);", "eval() usage (critical XSS/injection vector)"),
        ("const fn = new Function(body);", "new Function() with dynamic content (potential code injection)"),
        (
            'setTimeout("alert(document.cookie)", 100);',
            "setTimeout/setInterval with string argument (use function reference instead)",
        ),
        (
            "setInterval('refreshFeed()', 5000);",
            "setTimeout/setInterval with string argument (use function reference instead)",
        ),
        ("const s = document.createElement('script');", "Dynamic script element creation (review for XSS)"),
        ("window.location = params.next;", "location assignment with user input (potential open redirect/XSS)"),
    ])
    def test_sink_messages(self, line, message):
        assert unescaped_input_issue(make_source(line), line) == message

    @pytest.mark.parametrize("line", [
        "el.innerHTML = DOMPurify.sanitize(message);",
        "el.textContent = message;",
        "<a href={`/search?q=${encodeURIComponent(searchParams.q)}`}>Search</a>",
        "setTimeout(callback, 100);",
        "window.location = '/dashboard';",
    ])
    def test_safe_lines(self, line):
        assert unescaped_input_issue(make_source(line), line) is None

    def test_timer_with_string_variable(self):
        content = 'const code = "refresh()";\nsetTimeout(code, 100);\n'
        source = make_source(content)

        assert unescaped_input_issue(source, source.line(2)) == (
            "setTimeout/setInterval with string argument (use function reference instead)"
        )

    def test_component_findings(self, project):
        project.write("components/Widget.tsx", """
            'use client';

            export function Widget({ message, expression }) {
              const ref = useRef(null);
              ref.current.innerHTML = message;
              const total = eval(expression);
              return <div ref={ref}>{total}</div>;
            }
        """)

        findings = rules(project.run(XSSCheck), "xss-unescaped-input")

        assert [(f.line, f.message) for f in findings] == [
            (5, "innerHTML assignment without sanitization"),
            (6, "eval() usage (critical XSS/injection vector)"),
        ]

    def test_plain_modules_are_not_scanned(self, project):
        project.write("components/calc.ts", """
            export const run = (expression) => eval(expression);
        """)

        assert project.run(XSSCheck).passed

    def test_file_waiver_only_recorded_when_issues_exist(self, project):
        project.write("components/Clean.tsx", """
            // security-ignore-file: xss reviewed component
            export function Clean() {
              return <div>ok</div>;
            }
        """)
        project.write("components/Legacy.tsx", """
            // security-ignore-file: xss legacy widget pending rewrite
            export function Legacy({ html }) {
              document.write(html);
              return null;
            }
        """)

        result = project.run(XSSCheck)

        assert result.passed
        assert [w.file for w in result.waivers] == ["web/src/components/Legacy.tsx"]

    def test_file_marker_on_sanitized_markup_is_not_recorded(self, project):
        project.write("components/Article.tsx", """
            // security-ignore-file: xss CMS content
            import DOMPurify from 'dompurify';

            export function Article({ post }) {
              return <div dangerouslySetInnerHTML={{ __html: DOMPurify.sanitize(post.body) }} />;
            }
        """)

        result = project.run(XSSCheck)

        assert result.passed
        assert result.waivers == []
