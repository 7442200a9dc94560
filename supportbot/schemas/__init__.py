from supportbot.schemas.webhook import InboundMessage, WebhookAck, WhatsAppWebhookPayload

__all__ = ["InboundMessage", "WebhookAck", "WhatsAppWebhookPayload"]
