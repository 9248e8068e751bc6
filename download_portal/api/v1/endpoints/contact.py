"""Contact form endpoint."""

from fastapi import APIRouter

from download_portal.api.deps import MailServiceDep
from download_portal.schemas.contact import EmailRequest, EmailResponse

router = APIRouter()


@router.post("/email", response_model=EmailResponse)
async def send_email(email: EmailRequest, mail_service: MailServiceDep):
    """Forward a visitor message to the site owner. 503 when mail is unavailable."""
    sent = await mail_service.send_contact_email(
        sender=email.sender,
        first_name=email.first_name,
        last_name=email.last_name,
        message=email.message,
    )
    return EmailResponse(data=sent)
