"""
Patient service for finding or registering patients at booking time.
"""

from typing import Optional

from ...core.models import Patient
from ...utils.logging import get_logger
from ...utils.phone import PhoneNumberParser
from ...utils.validation import ValidationUtils
from .repository import ClinicRepository


logger = get_logger("clinica.patient")


class PatientService:
    """Service for handling patient records."""

    def __init__(self, repository: ClinicRepository):
        self.repository = repository
        self.phone_parser = PhoneNumberParser()

    async def find_or_create(
        self,
        full_name: str,
        phone: str,
        cpf: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Patient:
        """
        Return the existing patient for this phone or CPF, or register a new one.

        Args:
            full_name: Patient name as collected in the conversation
            phone: Phone number in any common Brazilian format
            cpf: Optional CPF; only stored when its check digits are valid
            email: Optional e-mail address

        Returns:
            The matching or newly created Patient
        """
        normalized_phone = self.phone_parser.normalize(phone) or phone
        normalized_cpf = ValidationUtils.normalize_cpf(cpf) if cpf else None
        if normalized_cpf and not ValidationUtils.is_valid_cpf(normalized_cpf):
            normalized_cpf = None
        if email and not ValidationUtils.validate_email(email):
            email = None

        patient = await self.repository.find_patient_by_phone(normalized_phone)
        if patient is None and normalized_cpf:
            patient = await self.repository.find_patient_by_cpf(normalized_cpf)
        if patient is not None:
            return patient

        patient = await self.repository.create_patient(
            full_name=full_name.strip(),
            phone=normalized_phone,
            cpf=normalized_cpf,
            email=email,
        )
        logger.info(f"patient: registered {patient.id}")
        return patient
