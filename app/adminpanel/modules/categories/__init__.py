"""
Admin categories: administrator-defined groupings for modules in the admin menu.

- Categories are created, renamed and described by users holding category rights
- Deletion is a two-step confirm/execute round trip with no server-held state
- Module links to a deleted category are left in place and fall back to the
  default category when read
"""
