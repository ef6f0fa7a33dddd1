"""Input validation utilities."""
import re
from datetime import date
import bleach
from shared.enums import ProjectStatus, PriorityLevel, ReportType, REPORT_REQUIRED_FIELDS


class ValidationError(Exception):
    """Raised when input validation fails."""
    pass


class Validator:
    """Input validation utilities."""

    # Common validation patterns (pre-compiled for performance)
    # Email pattern: local part must start/end with alphanumeric, no consecutive dots/special chars
    # Domain parts must start/end with alphanumeric, no consecutive dots/hyphens
    EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9]+([._%+-][a-zA-Z0-9]+)*@([a-zA-Z0-9]+([.-][a-zA-Z0-9]+)*\.)+[a-zA-Z]{2,}$')
    PHONE_PATTERN = re.compile(r'^\+?1?[-.\s]?\(?([0-9]{3})\)?[-.\s]?([0-9]{3})[-.\s]?([0-9]{4})$')
    PHONE_CLEAN_PATTERN = re.compile(r'[^\d+()-.\s]')
    ZIP_PATTERN = re.compile(r'^\d{5}(-\d{4})?$')
    DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')

    @staticmethod
    def validate_required(value, field_name):
        """Validate that a required field is not empty."""
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"{field_name} is required")
        return value

    @staticmethod
    def validate_string_length(value, field_name, min_length=0, max_length=None):
        """Validate string length constraints."""
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} must be a string")

        if len(value.strip()) < min_length:
            raise ValidationError(f"{field_name} must be at least {min_length} characters")

        if max_length and len(value) > max_length:
            raise ValidationError(f"{field_name} must be no more than {max_length} characters")

        return value.strip()

    @staticmethod
    def validate_email(email):
        """Validate email format."""
        if not isinstance(email, str):
            raise ValidationError("Invalid email format")
        email = email.strip()
        if not Validator.EMAIL_PATTERN.match(email):
            raise ValidationError("Invalid email format")
        return email

    @staticmethod
    def validate_phone(phone):
        """Validate phone number format."""
        phone_stripped = phone.strip()
        if any(c not in '0123456789+()-. ' for c in phone_stripped):
            phone_stripped = Validator.PHONE_CLEAN_PATTERN.sub('', phone_stripped)
        if not Validator.PHONE_PATTERN.match(phone_stripped):
            raise ValidationError("Invalid phone number format")
        return phone_stripped

    @staticmethod
    def validate_zip(zip_code):
        """Validate a US ZIP or ZIP+4 code."""
        zip_code = zip_code.strip()
        if not Validator.ZIP_PATTERN.match(zip_code):
            raise ValidationError("Invalid ZIP code format")
        return zip_code

    @staticmethod
    def validate_date_string(value, field_name):
        """Validate a YYYY-MM-DD calendar date string."""
        if not isinstance(value, str) or not Validator.DATE_PATTERN.match(value):
            raise ValidationError(f"{field_name} must be a date in YYYY-MM-DD format")
        try:
            date.fromisoformat(value)
        except ValueError:
            raise ValidationError(f"{field_name} is not a valid calendar date")
        return value

    @staticmethod
    def validate_numeric_range(value, field_name, min_val=None, max_val=None):
        """Validate numeric value within range."""
        try:
            num_val = float(value) if isinstance(value, str) else value

            if min_val is not None and num_val < min_val:
                raise ValidationError(f"{field_name} must be at least {min_val}")

            if max_val is not None and num_val > max_val:
                raise ValidationError(f"{field_name} must be no more than {max_val}")

            return num_val
        except (ValueError, TypeError):
            raise ValidationError(f"{field_name} must be a valid number")

    @staticmethod
    def validate_choice(value, field_name, valid_choices):
        """Validate that value is in list of valid choices."""
        if value not in valid_choices:
            raise ValidationError(f"{field_name} must be one of: {', '.join(str(c) for c in valid_choices)}")
        return value

    @staticmethod
    def sanitize_html(text):
        """Secure HTML sanitization using bleach library.

        Plain text without markup characters is returned untouched.
        """
        if not text:
            return text

        if '<' not in text and '>' not in text and '&' not in text:
            return text

        allowed_tags = ['p', 'br', 'strong', 'em', 'u', 'ul', 'ol', 'li', 'blockquote']
        allowed_attributes = {}

        return bleach.clean(text, tags=allowed_tags, attributes=allowed_attributes, strip=True)

    @staticmethod
    def validate_project_data(data):
        """Validate project data coming from a client form."""
        validated = {}

        validated['name'] = Validator.validate_required(
            Validator.validate_string_length(data.get('name', ''), 'Project name', 1, 200),
            'Project name'
        )

        if data.get('description'):
            validated['description'] = Validator.sanitize_html(
                Validator.validate_string_length(data['description'], 'Project description', 0, 2000)
            )

        if data.get('contact_phone'):
            validated['contact_phone'] = Validator.validate_phone(data['contact_phone'])

        if data.get('zip'):
            validated['zip'] = Validator.validate_zip(data['zip'])

        if 'status' in data:
            validated['status'] = Validator.validate_choice(
                data['status'], 'Project status', [status.value for status in ProjectStatus]
            )
        if 'priority' in data:
            validated['priority'] = Validator.validate_choice(
                data['priority'], 'Project priority', [priority.value for priority in PriorityLevel]
            )

        for field in ('start_date', 'end_date'):
            if data.get(field):
                validated[field] = Validator.validate_date_string(data[field], field)
        if validated.get('start_date') and validated.get('end_date') \
                and validated['end_date'] < validated['start_date']:
            raise ValidationError("end_date must not be before start_date")

        return validated

    @staticmethod
    def missing_report_fields(report_type, content):
        """Return the required content fields of a report type that are absent or blank."""
        try:
            report_type = ReportType(report_type)
        except ValueError:
            raise ValidationError(
                f"report_type must be one of: {', '.join(t.value for t in ReportType)}"
            )
        content = content or {}
        missing = []
        for field in REPORT_REQUIRED_FIELDS[report_type]:
            value = content.get(field)
            if value is None or (isinstance(value, (str, list, dict)) and not value):
                missing.append(field)
            elif isinstance(value, str) and not value.strip():
                missing.append(field)
        return missing

    @staticmethod
    def validate_report_content(report_type, content):
        """Validate that a report carries every content field its type requires."""
        if content is not None and not isinstance(content, dict):
            raise ValidationError("content must be a JSON object")
        missing = Validator.missing_report_fields(report_type, content)
        if missing:
            raise ValidationError(
                f"{ReportType(report_type).value} report is missing required fields: {', '.join(missing)}"
            )
        return content or {}
