"""Tests for the POPIA personal-information checks."""

from pathlib import Path

from security_validator.models import Severity
from security_validator.scanners.common import SourceFile
from security_validator.scanners.pii import (
    PIIFieldHandlingCheck,
    PIILoggingCheck,
    is_encrypted,
    pii_fields,
)


def rules(result, rule):
    return [f for f in result.findings if f.rule == rule]


class TestPiiFields:
    """Test personal-data field detection."""

    def test_contact_details(self):
        assert pii_fields("logger.info(user.phone, user.address)") == ["phone", "address"]

    def test_special_personal_information(self):
        assert pii_fields("const record = { religion, medical: history }") == ["religion", "health"]

    def test_sa_id_variants(self):
        assert pii_fields("form.idNumber") == ["saIdNumber"]
        assert pii_fields("payload.sa_id") == ["saIdNumber"]

    def test_unrelated_identifiers(self):
        assert pii_fields("console.log('Loaded', items.length)") == []


class TestPIILoggingCheck:
    """Test personal data in log statements."""

    def test_email_logged(self, project):
        project.write("app/api/signup/route.ts", """
            export async function POST(request) {
              const user = await request.json();
              console.log('New signup', user.email);
              return Response.json({ ok: true });
            }
        """)

        result = project.run(PIILoggingCheck)

        assert len(result.findings) == 1
        finding = result.findings[0]
        assert finding.rule == "pii-logging"
        assert finding.line == 3
        assert finding.message == "Potential PII logging detected: email"
        assert finding.severity == Severity.warning
        assert "POPIA" in finding.remediation

    def test_masked_value_passes(self, project):
        project.write("lib/audit.ts", """
            export function audit(user) {
              console.log('Signup', maskEmail(user.email));
            }
        """)

        assert project.run(PIILoggingCheck).passed

    def test_several_fields_on_one_line(self, project):
        project.write("lib/audit.ts", """
            logger.info('Contact updated', user.phone, user.address);
        """)

        findings = project.run(PIILoggingCheck).findings

        assert findings[0].message == "Potential PII logging detected: phone, address"

    def test_comments_and_tests_are_skipped(self, project):
        project.write("lib/audit.ts", """
            // console.log(user.email);
            export const noop = () => null;
        """)
        project.write("lib/audit.test.ts", """
            console.log(user.email);
        """)

        assert project.run(PIILoggingCheck).passed

    def test_line_marker_waives(self, project):
        project.write("lib/audit.ts", """
            // security-ignore: audit log is encrypted at rest
            console.info('Consent granted', user.email);
        """)

        result = project.run(PIILoggingCheck)

        assert result.passed
        assert [(w.check_type, w.line) for w in result.waivers] == [("pii-logging", 2)]

    def test_popia_file_marker_waives(self, project):
        project.write("lib/audit.ts", """
            // security-ignore-file: popia compliance export job
            console.info('Exported', user.email);
        """)

        result = project.run(PIILoggingCheck)

        assert result.passed
        assert len(result.waivers) == 1


class TestPIIFieldHandlingCheck:
    """Test personal data in browser storage and SA ID handling."""

    def test_unencrypted_local_storage(self, project):
        project.write("components/Profile.tsx", """
            'use client';

            export function remember(user) {
              localStorage.setItem('email', user.email);
            }
        """)

        findings = rules(project.run(PIIFieldHandlingCheck), "pii-storage")

        assert [(f.line, f.message) for f in findings] == [
            (4, "PII stored in localStorage without encryption: email"),
        ]

    def test_encrypted_on_same_line(self, project):
        project.write("lib/storage.ts", """
            localStorage.setItem('email', encrypt(user.email));
        """)

        assert project.run(PIIFieldHandlingCheck).passed

    def test_encryption_shortly_before(self, project):
        project.write("lib/storage.ts", """
            const key = await crypto.subtle.importKey('raw', secret, 'AES-GCM', false, ['encrypt']);
            sessionStorage.setItem('phone', sealed(user.phone));
        """)

        assert project.run(PIIFieldHandlingCheck).passed

    def test_cookie_sink(self, project):
        project.write("lib/storage.ts", """
            document.cookie = `surname=${user.surname}; path=/`;
        """)

        findings = rules(project.run(PIIFieldHandlingCheck), "pii-storage")

        assert [f.message for f in findings] == ["PII stored in cookie without encryption: fullName"]

    def test_is_encrypted_lookback_window(self):
        filler = "const padding = 1;\n" * 40
        content = "const c = crypto.randomUUID();\n" + filler + "localStorage.setItem('email', user.email);\n"
        source = SourceFile.from_text(Path("a.ts"), "lib/a.ts", "web/src/lib/a.ts", content)
        line_number = 42

        assert source.line(line_number).startswith("localStorage")
        assert not is_encrypted(source, line_number, source.line(line_number))

    def test_sa_id_without_validation(self, project):
        project.write("lib/kyc.ts", """
            export async function submitKyc(form) {
              const idNumber = form.idNumber;
              return fetch('/api/kyc', { method: 'POST', body: JSON.stringify({ idNumber }) });
            }
        """)

        findings = rules(project.run(PIIFieldHandlingCheck), "sa-id-number")

        assert len(findings) == 1
        assert findings[0].line == 2
        assert findings[0].message == "SA ID number handling detected without validation or masking"

    def test_sa_id_with_luhn_validation(self, project):
        project.write("lib/kyc.ts", """
            export async function submitKyc(form) {
              if (!luhnCheck(form.idNumber)) throw new Error('Invalid ID');
              return fetch('/api/kyc', { method: 'POST', body: JSON.stringify(form) });
            }
        """)

        assert rules(project.run(PIIFieldHandlingCheck), "sa-id-number") == []

    def test_sa_id_display_only(self, project):
        project.write("components/IdBadge.tsx", """
            export function IdBadge({ idNumber }) {
              return <span>{idNumber}</span>;
            }
        """)

        assert project.run(PIIFieldHandlingCheck).passed
