"""
Contact Form Service

Stores messages sent through the public contact form and gives editors a
small workflow over them: new, in progress, resolved, or spam.
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from errors import InvalidStatus, NotFound, ValidationError
from models import db, ContactStatus, ContactSubmission

logger = logging.getLogger(__name__)

CONTACT_REGIONS = ('EG', 'US', 'INTL')
SUCCESS_MESSAGE = "Your message has been received. We will get back to you soon."
EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

# field: (min length, max length, required message, min-length message)
FIELD_RULES = {
    'name': (3, 100, "Please provide your name.", "Name must be at least 3 characters."),
    'subject': (5, 200, "Subject is required.", "Subject must be at least 5 characters."),
    'message': (20, 5000, "Message cannot be empty.", "Message must be at least 20 characters."),
}


class ContactService:
    """
    Contact submission workflow.

    Features:
    - Field validation before anything is stored
    - Status transitions limited to the ContactStatus values
    - Region and unread listings for editors
    - Batch removal of spam
    """

    def validate_submission(self, data: Optional[Dict[str, Any]]) -> Dict[str, List[str]]:
        """Return field-level errors; an empty dict means the payload is valid."""
        data = data or {}
        errors: Dict[str, List[str]] = {}

        for field, (min_length, max_length, required_message, min_message) in FIELD_RULES.items():
            value = data.get(field)
            if not isinstance(value, str) or not value.strip():
                errors[field] = [required_message]
            elif len(value.strip()) < min_length:
                errors[field] = [min_message]
            elif len(value.strip()) > max_length:
                errors[field] = [f"{field.capitalize()} may not be greater than {max_length} characters."]

        email = data.get('email')
        if not isinstance(email, str) or not email.strip():
            errors['email'] = ["Email address is required."]
        elif not EMAIL_PATTERN.match(email.strip()):
            errors['email'] = ["Please provide a valid email address."]
        elif len(email.strip()) > 100:
            errors['email'] = ["Email may not be greater than 100 characters."]

        region = data.get('region')
        if not region:
            errors['region'] = ["Please select your region."]
        elif region not in CONTACT_REGIONS:
            errors['region'] = ["Invalid region selected."]

        return errors

    def create_submission(self, data: Dict[str, Any], ip_address: Optional[str] = None,
                          locale: str = 'en', user_agent: Optional[str] = None) -> ContactSubmission:
        errors = self.validate_submission(data)
        if errors:
            logger.warning(f"Rejected contact submission: {sorted(errors)}")
            raise ValidationError(errors=errors)

        submission = ContactSubmission(
            name=data['name'].strip(),
            email=data['email'].strip(),
            phone=data.get('phone'),
            subject=data['subject'].strip(),
            message=data['message'].strip(),
            region=data['region'],
            ip_address=ip_address,
            user_agent=(user_agent or '')[:500] or None,
            locale=locale,
            status=ContactStatus.NEW,
        )
        db.session.add(submission)
        db.session.commit()

        logger.info(f"Contact submission {submission.id} received from region {submission.region}")
        return submission

    def get_submission(self, submission_id: str) -> ContactSubmission:
        submission = db.session.get(ContactSubmission, submission_id)
        if submission is None:
            raise NotFound("Contact submission not found.", id=submission_id)
        return submission

    def update_status(self, submission_id: str, status) -> ContactSubmission:
        try:
            status = ContactStatus(status)
        except ValueError:
            raise InvalidStatus(status, [s.value for s in ContactStatus])

        submission = self.get_submission(submission_id)
        submission.status = status
        db.session.commit()
        logger.info(f"Contact submission {submission.id} marked {status.value}")
        return submission

    def mark_as_read(self, submission_id: str) -> ContactSubmission:
        """Move a new submission to in progress; other states are left alone."""
        submission = self.get_submission(submission_id)
        if submission.status == ContactStatus.NEW:
            submission.status = ContactStatus.IN_PROGRESS
            db.session.commit()
        return submission

    def mark_as_responded(self, submission_id: str, response_message: str) -> ContactSubmission:
        if not response_message or not response_message.strip():
            raise ValidationError(errors={'response_message': ["A response message is required."]})

        submission = self.get_submission(submission_id)
        submission.status = ContactStatus.RESOLVED
        submission.response_message = response_message.strip()
        submission.responded_at = datetime.utcnow()
        db.session.commit()
        logger.info(f"Contact submission {submission.id} resolved")
        return submission

    def get_unread(self) -> List[ContactSubmission]:
        return ContactSubmission.query.filter_by(status=ContactStatus.NEW).order_by(
            ContactSubmission.created_at.desc()
        ).all()

    def get_by_region(self, region: str) -> List[ContactSubmission]:
        return ContactSubmission.query.filter_by(region=region).order_by(
            ContactSubmission.created_at.desc()
        ).all()

    def delete_spam(self) -> int:
        deleted = ContactSubmission.query.filter_by(status=ContactStatus.SPAM).delete(
            synchronize_session=False
        )
        db.session.commit()
        logger.info(f"Deleted {deleted} spam contact submissions")
        return deleted
