"""
AWS SES Email Service for sending verification codes.

Handles email formatting and AWS SES integration.
"""

import logging
from typing import Optional
import boto3
from botocore.exceptions import ClientError, BotoCoreError
from storefront.core.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """
    Service for sending emails via AWS SES.

    Supports both development (sandbox) and production modes.
    """

    def __init__(self, ses_client=None, expiry_minutes: int = settings.VERIFICATION_CODE_EXPIRY_MINUTES):
        """Initialize AWS SES client"""
        self.expiry_minutes = expiry_minutes

        if ses_client is not None:
            self.ses_client = ses_client
            return

        session_kwargs = {
            'region_name': settings.AWS_REGION,
        }

        # Add credentials if provided (otherwise uses IAM role)
        if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
            session_kwargs['aws_access_key_id'] = settings.AWS_ACCESS_KEY_ID
            session_kwargs['aws_secret_access_key'] = settings.AWS_SECRET_ACCESS_KEY

        self.ses_client = boto3.client('ses', **session_kwargs)

    def send_verification_email(
        self,
        to_email: str,
        verification_code: str,
        user_name: Optional[str] = None
    ) -> bool:
        """
        Send a verification code email.

        Args:
            to_email: Recipient email address
            verification_code: numeric verification code
            user_name: Optional name for personalization

        Returns:
            bool: True if email sent successfully, False otherwise
        """
        subject = f"Your {settings.AWS_SES_FROM_NAME} verification code"

        html_body = self._build_verification_html(verification_code, user_name)
        text_body = self._build_verification_text(verification_code, user_name)

        try:
            response = self.ses_client.send_email(
                Source=f"{settings.AWS_SES_FROM_NAME} <{settings.AWS_SES_FROM_EMAIL}>",
                Destination={'ToAddresses': [to_email]},
                Message={
                    'Subject': {'Data': subject, 'Charset': 'UTF-8'},
                    'Body': {
                        'Html': {'Data': html_body, 'Charset': 'UTF-8'},
                        'Text': {'Data': text_body, 'Charset': 'UTF-8'}
                    }
                }
            )

            message_id = response.get('MessageId')
            logger.info(f"Verification email sent to {to_email} (MessageId: {message_id})")
            return True

        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']
            logger.error(f"AWS SES ClientError: {error_code} - {error_message}")

            if error_code == 'MessageRejected':
                logger.error(f"Email rejected: {error_message}")
            elif error_code == 'MailFromDomainNotVerified':
                logger.error("Sender email not verified in SES")

            return False

        except BotoCoreError as e:
            logger.error(f"AWS BotoCoreError: {str(e)}")
            return False

    def _build_verification_html(self, code: str, user_name: Optional[str] = None) -> str:
        greeting = f"Hi {user_name}," if user_name else "Hi there,"

        return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>Email Verification</title>
</head>
<body style="margin: 0; padding: 24px; font-family: Arial, sans-serif; background-color: #f4f4f4;">
    <div style="max-width: 480px; margin: 0 auto; background: #ffffff; padding: 32px; border-radius: 8px;">
        <p>{greeting}</p>
        <p>Your verification code is:</p>
        <div style="font-size: 28px; font-weight: 700; letter-spacing: 4px; margin: 16px 0;">{code}</div>
        <p>This code expires in {self.expiry_minutes} minutes. If you did not request it, you can ignore this email.</p>
    </div>
</body>
</html>
"""

    def _build_verification_text(self, code: str, user_name: Optional[str] = None) -> str:
        greeting = f"Hi {user_name}," if user_name else "Hi there,"

        return (
            f"{greeting}\n\n"
            f"Your verification code is: {code}\n\n"
            f"This code expires in {self.expiry_minutes} minutes. "
            "If you did not request it, you can ignore this email.\n"
        )
