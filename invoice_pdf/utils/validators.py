"""Zentrale Validierungs-Funktionen für wiederverwendbare Logik"""
import re
from typing import Optional


class Validators:
    """Sammlung von wiederverwendbaren Validierungs-Funktionen"""

    # Regex-Pattern als Klassen-Konstanten
    EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    IBAN_PATTERN = r'^[A-Z]{2}[0-9]{2}[A-Z0-9]+$'
    IBAN_MIN_LENGTH = 15
    IBAN_MAX_LENGTH = 34

    @staticmethod
    def normalize_account_code(value: Optional[str]) -> Optional[str]:
        """
        Entfernt alle Leerzeichen und wandelt in Großbuchstaben um (IBAN/BIC).

        Returns:
            Normalisierter Wert oder None bei leerer Eingabe
        """
        if value is None:
            return None
        cleaned = re.sub(r'\s+', '', value).upper()
        return cleaned or None

    @staticmethod
    def is_valid_iban(iban: Optional[str]) -> bool:
        """
        Rein syntaktische IBAN-Prüfung: Ländercode, zwei Prüfziffern,
        alphanumerischer Rest, Gesamtlänge 15 bis 34 Zeichen.

        Eine Prüfsummenberechnung (MOD-97) findet nicht statt.
        """
        if not iban:
            return False
        return (
            re.match(Validators.IBAN_PATTERN, iban) is not None
            and Validators.IBAN_MIN_LENGTH <= len(iban) <= Validators.IBAN_MAX_LENGTH
        )

    @staticmethod
    def validate_email(email: Optional[str]) -> Optional[str]:
        """
        Validiert eine E-Mail-Adresse.

        Returns:
            Bereinigte E-Mail (stripped) oder None

        Raises:
            ValueError: Wenn E-Mail ungültig ist
        """
        if email and email.strip():
            if not re.match(Validators.EMAIL_PATTERN, email.strip()):
                raise ValueError("Ungültige E-Mail-Adresse")
            return email.strip()
        return None

    @staticmethod
    def is_blank(text: Optional[str]) -> bool:
        """True wenn der Text fehlt oder nur aus Leerzeichen besteht"""
        return text is None or not str(text).strip()
