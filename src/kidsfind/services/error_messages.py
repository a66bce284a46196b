"""
Centralized user-facing messages for the monitoring services.

Error texts shown to parents and the titles/bodies of the notifications the
services emit. All texts are French.
"""

from typing import Any, Dict


class ServiceErrorMessages:
    """Centralized error messages, keyed by error code."""

    NETWORK_ERROR = "Problème de connexion réseau"
    UNAUTHORIZED = "Session expirée, veuillez vous reconnecter"
    FORBIDDEN = "Accès non autorisé"
    NOT_FOUND = "Ressource non trouvée"
    SERVER_ERROR = "Erreur serveur, veuillez réessayer"
    MICROPHONE_PERMISSION = "Permission d'accès au microphone requise"
    LOCATION_PERMISSION = "Permission de localisation requise"
    INVALID_PHONE = "Numéro de téléphone invalide"
    CHILD_NOT_FOUND = "Enfant non trouvé"
    PREMIUM_REQUIRED = "Fonctionnalité premium requise"

    # Monitoring specific
    VALIDATION_ERROR = "Données invalides"
    CONFIGURATION_ERROR = "Configuration invalide"
    INVALID_SESSION_STATE = "Action impossible dans l'état actuel de la session"
    SESSION_ALREADY_ACTIVE = "Une session d'écoute est déjà active pour cet enfant"
    DAILY_LIMIT_EXCEEDED = "Limite quotidienne de sessions atteinte"
    COOLDOWN_ACTIVE = "Veuillez patienter avant une nouvelle session"
    CONSENT_DENIED = "L'enfant n'a pas donné son accord"
    RECORDING_FAILED = "Impossible de démarrer l'enregistrement audio"
    LOCATION_UNAVAILABLE = "Impossible d'obtenir la position actuelle"
    PLAYBACK_FAILED = "Impossible de jouer le son sur l'appareil"

    # error_code -> HTTP status
    HTTP_STATUS: Dict[str, int] = {
        "VALIDATION_ERROR": 400,
        "CONFIGURATION_ERROR": 500,
        "UNAUTHORIZED": 401,
        "FORBIDDEN": 403,
        "PREMIUM_REQUIRED": 403,
        "MICROPHONE_PERMISSION": 403,
        "LOCATION_PERMISSION": 403,
        "INVALID_PHONE": 400,
        "NOT_FOUND": 404,
        "CHILD_NOT_FOUND": 404,
        "INVALID_SESSION_STATE": 409,
        "SESSION_ALREADY_ACTIVE": 409,
        "CONSENT_DENIED": 409,
        "DAILY_LIMIT_EXCEEDED": 429,
        "COOLDOWN_ACTIVE": 429,
        "RECORDING_FAILED": 500,
        "LOCATION_UNAVAILABLE": 503,
        "PLAYBACK_FAILED": 500,
        "SERVER_ERROR": 500,
    }

    @classmethod
    def for_code(cls, error_code: str) -> str:
        """French message for an error code, falling back to the server error."""
        message = getattr(cls, error_code, None)
        return message if isinstance(message, str) else cls.SERVER_ERROR

    @classmethod
    def status_for(cls, error_code: str) -> int:
        return cls.HTTP_STATUS.get(error_code, 500)


class SuccessMessages:
    """Confirmation texts."""

    SOS_SENT = "Alerte SOS envoyée"
    SETTINGS_SAVED = "Paramètres sauvegardés"


class NotificationTexts:
    """Titles and body templates of parent notifications, keyed by kind."""

    TEMPLATES: Dict[str, Dict[str, str]] = {
        "listening_started": {
            "title": "Écoute environnementale",
            "body": "Session d'écoute démarrée ({duration} s) : {reason}",
        },
        "listening_stopped": {
            "title": "Écoute environnementale",
            "body": "Session d'écoute terminée ({end_reason})",
        },
        "screen_time_limit": {
            "title": "Temps d'écran",
            "body": "Limite quotidienne de temps d'écran atteinte ({limit} min)",
        },
        "bedtime": {
            "title": "Heure du coucher",
            "body": "Utilisation de l'appareil restreinte pendant les heures de coucher",
        },
        "break_reminder": {
            "title": "Pause",
            "body": "Rappel de pause : il est temps de se reposer !",
        },
        "app_blocked": {
            "title": "Application bloquée",
            "body": "L'application {package} a été bloquée",
        },
        "blocked_call": {
            "title": "Appel bloqué",
            "body": "Appel de {number} bloqué ({reason})",
        },
        "unknown_call": {
            "title": "Appel inconnu",
            "body": "Appel d'un numéro inconnu : {number}",
        },
        "whitelist_request": {
            "title": "Demande de contact",
            "body": "Demande d'ajout de {name} ({number}) : {reason}",
        },
        "battery_low": {
            "title": "Batterie faible",
            "body": "Batterie à {level}%",
        },
        "battery_critical": {
            "title": "Batterie critique",
            "body": "Batterie critique à {level}%",
        },
        "battery_charging": {
            "title": "Batterie",
            "body": "État de charge modifié : {state} ({level}%)",
        },
        "battery_full": {
            "title": "Batterie pleine",
            "body": "Batterie chargée à 100%",
        },
        "sos_triggered": {
            "title": "Alerte SOS",
            "body": "Alerte SOS déclenchée",
        },
        "sos_follow_up": {
            "title": "Alerte SOS",
            "body": "Alerte SOS continue - {alerts_sent} alertes envoyées",
        },
        "sos_resolved": {
            "title": "Alerte SOS",
            "body": "Alerte SOS résolue",
        },
        "remote_sound_started": {
            "title": "Son à distance",
            "body": "Son {sound_type} déclenché pendant {duration} s",
        },
        "remote_sound_stopped": {
            "title": "Son à distance",
            "body": "Son arrêté ({end_reason})",
        },
    }

    @classmethod
    def render(cls, kind: str, **values: Any) -> Dict[str, str]:
        """Return ``{"title", "body"}`` for a notification kind."""
        template = cls.TEMPLATES.get(kind, {"title": kind, "body": ""})
        return {
            "title": template["title"],
            "body": template["body"].format(**values),
        }


# Convenience constants for direct import
SERVER_ERROR = ServiceErrorMessages.SERVER_ERROR
PREMIUM_REQUIRED = ServiceErrorMessages.PREMIUM_REQUIRED
SOS_SENT = SuccessMessages.SOS_SENT
