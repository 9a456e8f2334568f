"""aiproval.integrations: outbound HTTP gateway modules.

All outbound HTTP calls go through a gateway in this package, never via
bare `requests` calls in services or blueprints. Each gateway accepts an
injected `requests.Session` so tests can intercept calls.

Current gateways:
  slack_gateway.SlackGateway       : incoming-webhook notification delivery
  document_gateway.DocumentGateway : fetches documents for AI summaries
"""
