class PubSubError(Exception):
    pass

class PreconditionError(PubSubError):
    """Operation needs a collaborator that is not bound, e.g. acknowledging without a subscription."""
    pass
