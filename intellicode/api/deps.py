from fastapi.requests import HTTPConnection

from intellicode.collab.hub import CollaborationHub


def get_collab_hub(connection: HTTPConnection) -> CollaborationHub:
    """The collaboration hub created for this application's lifetime."""
    return connection.app.state.collab_hub
