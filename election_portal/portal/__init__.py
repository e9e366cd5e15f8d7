"""Portal service: configuration, election API client, ballot sessions and HTTP app."""
