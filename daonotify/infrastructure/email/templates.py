"""Transactional email templates for user account events."""

from __future__ import annotations

from typing import NamedTuple


class EmailContent(NamedTuple):
    subject: str
    body: str


def _paragraphs(*lines: str) -> str:
    return "\n\n".join(lines)


def user_created(name: str, email: str, password: str) -> EmailContent:
    """Welcome email carrying the temporary credentials of a new account."""

    return EmailContent(
        "Votre compte a été créé sur la plateforme DAO",
        _paragraphs(
            f"Bonjour {name},",
            "Votre compte a été créé avec succès sur la plateforme DAO.",
            f"Identifiant : {email}",
            f"Mot de passe : {password}",
            "Merci de vous connecter et de modifier votre mot de passe dès votre première connexion.",
        ),
    )


def user_deleted_for_user(name: str) -> EmailContent:
    return EmailContent(
        "Suppression de votre compte",
        _paragraphs(f"Bonjour {name},", "Votre compte a été supprimé de la plateforme DAO."),
    )


def user_deleted_for_admin(name: str, email: str) -> EmailContent:
    return EmailContent(
        "Suppression d’un utilisateur",
        _paragraphs("Bonjour Admin,", f"L’utilisateur {name} ({email}) a été supprimé."),
    )


__all__ = ["EmailContent", "user_created", "user_deleted_for_admin", "user_deleted_for_user"]
