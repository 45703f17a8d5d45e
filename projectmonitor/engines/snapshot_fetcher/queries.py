"""GraphQL documents used by the snapshot fetcher."""

PAGE_SIZE = 100

VIEWER_REPOS_QUERY = """
query ViewerRepos($cursor: String) {
  viewer {
    repositories(first: 100, after: $cursor) {
      pageInfo { hasNextPage endCursor }
      edges { node { name isArchived owner { login } } }
    }
  }
}
"""

VIEWER_ORGANIZATIONS_QUERY = """
query ViewerOrganizations($cursor: String) {
  viewer {
    organizations(first: 100, after: $cursor) {
      pageInfo { hasNextPage endCursor }
      edges { node { login viewerCanAdminister } }
    }
  }
}
"""

ORGANIZATION_REPOS_QUERY = """
query OrganizationRepos($login: String!, $cursor: String) {
  organization(login: $login) {
    repositories(first: 100, after: $cursor) {
      pageInfo { hasNextPage endCursor }
      edges { node { name isArchived owner { login } } }
    }
  }
}
"""

# Each connection is paged independently; an exhausted one is requested with
# first: 0 so it no longer contributes nodes.
REPO_QUERY = """
query Repo(
  $owner: String!, $name: String!,
  $issueCount: Int!, $issueCursor: String,
  $pullRequestCount: Int!, $pullRequestCursor: String,
  $discussionCount: Int!, $discussionCursor: String
) {
  repository(owner: $owner, name: $name) {
    url
    issues(first: $issueCount, after: $issueCursor, states: [OPEN]) {
      pageInfo { hasNextPage endCursor }
      edges { node { number title url createdAt viewerSubscription author { login } } }
    }
    pullRequests(first: $pullRequestCount, after: $pullRequestCursor, states: [OPEN]) {
      pageInfo { hasNextPage endCursor }
      edges { node { number title url createdAt viewerSubscription author { login } } }
    }
    discussions(first: $discussionCount, after: $discussionCursor, states: [OPEN]) {
      pageInfo { hasNextPage endCursor }
      edges { node { number title url createdAt viewerSubscription author { login } } }
    }
  }
}
"""
