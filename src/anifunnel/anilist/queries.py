"""GraphQL documents sent to AniList."""

MEDIALIST_MUTATION = """
mutation($id: Int, $progress: Int) {
  SaveMediaListEntry(id: $id, progress: $progress) {
    progress
  }
}
"""

MEDIALIST_QUERY = """
query MediaListCollection($user_id: Int) {
    MediaListCollection(userId: $user_id, status_in: [CURRENT, REPEATING], type: ANIME) {
        lists {
            entries {
                id
                progress
                media {
                    id
                    title {
                        romaji
                        english
                        native
                        userPreferred
                    }
                }
            }
        }
    }
}
"""

USER_QUERY = """
query {
    Viewer {
        id
        name
    }
}
"""
