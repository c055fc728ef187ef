"""Input validation checks: API request bodies, client forms and file uploads."""

import logging
import re

from ..config import DOCS
from ..models import CheckCategory
from .base import Check, FindingRecorder, ScanContext
from .common import JSX_EXTENSIONS, SourceFile

logger = logging.getLogger(__name__)

MUTATING_EXPORT_RE = re.compile(r"export.*\b(POST|PUT|PATCH)\b")
API_VALIDATION_MARKERS = ("z.", "zod", "schema", "validate")

FORM_ELEMENT_RES = (
    re.compile(r"<form", re.IGNORECASE),
    re.compile(r"<Form"),
    re.compile(r"<input", re.IGNORECASE),
    re.compile(r"<Input"),
    re.compile(r"<textarea", re.IGNORECASE),
    re.compile(r"<Textarea"),
    re.compile(r"<select", re.IGNORECASE),
    re.compile(r"<Select"),
)

FORM_VALIDATION_MARKERS = (
    # Zod
    "z.", 'from "zod"', "from 'zod'", "zodResolver",
    # react-hook-form / Formik
    "useForm", "react-hook-form", "useFormik", "Formik",
    # custom validators
    "validate", "Validate", "schema", "Schema",
    # HTML validation attributes
    "required", "pattern=", "minLength", "maxLength", "min=", "max=",
    # project utilities
    "validateRequest", "sanitize", "lib/validation",
)

UPLOAD_LINE_RES = (
    re.compile(r"type=[\"']?file[\"']?", re.IGNORECASE),
    re.compile(r"FormData"),
    re.compile(r"multipart", re.IGNORECASE),
    re.compile(r"uploadFile", re.IGNORECASE),
    re.compile(r"handleUpload", re.IGNORECASE),
    re.compile(r"onFileChange", re.IGNORECASE),
    re.compile(r"fileUpload", re.IGNORECASE),
    re.compile(r"request\.formData"),
    re.compile(r"req\.formData"),
)

MIME_MARKERS = (
    "image/", "application/", "text/", "video/", "audio/",
    "mime", "MIME", "contentType", "content-type",
)
EXTENSION_MARKERS = (".endsWith", "extension", "fileType", "allowedTypes", "acceptedTypes", "accept=")
SIZE_UNIT_MARKERS = ("maxSize", "MAX_SIZE", "limit", "1024", "MB", "KB", "bytes")
SIZE_MARKERS = ("fileSize", "maxFileSize", "sizeLimit")
CONTENT_MARKERS = (
    "magic", "header", "signature", "arrayBuffer", "ArrayBuffer",
    "Uint8Array", "readAsArrayBuffer", "FileReader",
)
UPLOAD_SCHEMA_MARKERS = ("fileUploadSchema", "uploadSchema", "validateFile", "fileValidation", "validateUpload")

API_REMEDIATION = f"""Add Zod schema validation for the request body. Example:

  import {{ z }} from 'zod';
  import {{ validateRequest }} from '@/lib/validation/schemas';

  const requestSchema = z.object({{
    name: z.string().min(1).max(100),
    email: z.string().email(),
  }});

  export async function POST(request: NextRequest) {{
    const body = await request.json();
    const validation = validateRequest(requestSchema, body);

    if (!validation.success) {{
      return NextResponse.json(
        {{ error: 'Validation failed', details: validation.errors }},
        {{ status: 400 }}
      );
    }}

    const {{ name, email }} = validation.data;
  }}

Documentation:
  - Schemas: {DOCS['validationSchemas']}
  - Example: {DOCS['protectedRoute']}
  - Zod: {DOCS['zod']}"""

FORM_REMEDIATION = f"""Add form validation using Zod schemas with react-hook-form. Example:

  import {{ z }} from 'zod';
  import {{ useForm }} from 'react-hook-form';
  import {{ zodResolver }} from '@hookform/resolvers/zod';

  const formSchema = z.object({{
    email: z.string().email('Invalid email'),
    password: z.string().min(8, 'Password must be at least 8 characters'),
  }});

  function LoginForm() {{
    const {{ register, handleSubmit, formState: {{ errors }} }} = useForm({{
      resolver: zodResolver(formSchema),
    }});

    return (
      <form onSubmit={{handleSubmit(onSubmit)}}>
        <input {{...register('email')}} />
        {{errors.email && <span>{{errors.email.message}}</span>}}
      </form>
    );
  }}

Or use HTML validation: <input required minLength={{8}} pattern="..." />

Documentation:
  - Schemas: {DOCS['validationSchemas']} (emailSchema, passwordSchema, etc.)
  - Zod: {DOCS['zod']}"""

UPLOAD_REMEDIATION = f"""Add file type and size validation using fileUploadSchema or manual checks. Example:

  import {{ fileUploadSchema, validateRequest }} from '@/lib/validation/schemas';

  const validation = validateRequest(fileUploadSchema, {{
    name: file.name,
    size: file.size,
    type: file.type,
  }});

  // Or manual validation:
  const MAX_SIZE = 5 * 1024 * 1024; // 5MB
  const ALLOWED_TYPES = ['image/jpeg', 'image/png', 'application/pdf'];

  if (file.size > MAX_SIZE) {{
    throw new Error('File too large');
  }}
  if (!ALLOWED_TYPES.includes(file.type)) {{
    throw new Error('Invalid file type');
  }}

Documentation:
  - Schemas: {DOCS['validationSchemas']} (fileUploadSchema)
  - Zod: {DOCS['zod']}"""


def has_form_elements(content: str) -> bool:
    if '<input' in content and 'type="hidden"' not in content:
        return True
    return any(
        marker in content
        for marker in ("<form", "<Form", "<Input", "<textarea", "<Textarea", "<select", "<Select")
    )


def handles_file_upload(content: str) -> bool:
    if any(marker in content for marker in ('type="file"', "type='file'", 'type={"file"}')):
        return True
    if "FormData" in content and (".append" in content or ".get" in content):
        return True
    if "multipart" in content:
        return True
    if "File" in content and any(attr in content for attr in (".type", ".size", ".name")):
        return True
    return any(
        marker in content
        for marker in (
            "uploadFile", "handleUpload", "onFileChange", "fileUpload", "FileUpload",
            "request.formData", "req.formData",
        )
    )


def upload_validation(content: str) -> dict[str, bool]:
    """Which kinds of upload validation appear in ``content``."""
    return {
        "type": (
            (".type" in content and any(m in content for m in MIME_MARKERS))
            or any(m in content for m in EXTENSION_MARKERS)
        ),
        "size": (
            (".size" in content and any(m in content for m in SIZE_UNIT_MARKERS))
            or any(m in content for m in SIZE_MARKERS)
        ),
        "content": any(m in content for m in CONTENT_MARKERS),
        "schema": any(m in content for m in UPLOAD_SCHEMA_MARKERS),
    }


class InputValidationCheck(Check):
    category = CheckCategory.input_validation
    progress_message = "Checking input validation..."

    def scan(self, context: ScanContext, recorder: FindingRecorder) -> None:
        self.check_api_routes(context, recorder)
        self.check_forms(context, recorder)
        self.check_file_uploads(context, recorder)

    def check_api_routes(self, context: ScanContext, recorder: FindingRecorder) -> None:
        for source in context.index.files_under("app/api"):
            export_line = source.first_line_matching(MUTATING_EXPORT_RE, default=0)
            if not export_line or "[...nextauth]" in source.relative_path:
                continue
            if source.contains_any(*API_VALIDATION_MARKERS):
                continue
            if recorder.file_waived(source, "input-validation"):
                continue
            recorder.report(
                source, export_line, "input-validation",
                "API route missing input validation",
                API_REMEDIATION,
            )

    def check_forms(self, context: ScanContext, recorder: FindingRecorder) -> None:
        logger.info("Checking form components for validation...")
        for source in context.index.files_under("app", "components", extensions=JSX_EXTENSIONS):
            if not source.is_client_component:
                continue
            if not has_form_elements(source.content):
                continue
            if source.contains_any(*FORM_VALIDATION_MARKERS):
                continue
            if recorder.file_waived(source, "form-validation"):
                continue
            recorder.report(
                source, source.first_line_matching(*FORM_ELEMENT_RES), "form-validation",
                "Client form component missing input validation",
                FORM_REMEDIATION,
            )

    def check_file_uploads(self, context: ScanContext, recorder: FindingRecorder) -> None:
        logger.info("Checking file upload handlers for validation...")
        for source in context.index.files_under("app", "components", "lib"):
            if _is_validation_module(source):
                continue
            if not handles_file_upload(source.content):
                continue
            found = upload_validation(source.content)
            adequate = (
                found["schema"]
                or (found["type"] and found["size"])
                or (found["type"] and found["content"])
                or (found["size"] and found["content"])
            )
            if adequate:
                continue
            if recorder.file_waived(source, "file-upload-validation"):
                continue

            missing = []
            if not found["type"]:
                missing.append("file type")
            if not found["size"]:
                missing.append("file size")
            suffix = f" (missing: {', '.join(missing)})" if missing else ""

            recorder.report(
                source, source.first_line_matching(*UPLOAD_LINE_RES), "file-upload-validation",
                f"File upload handler missing validation{suffix}",
                UPLOAD_REMEDIATION,
            )


def _is_validation_module(source: SourceFile) -> bool:
    return "schemas.ts" in source.relative_path or "validation" in source.relative_path
