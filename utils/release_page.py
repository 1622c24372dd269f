#!/usr/bin/env python3
"""Release-notes display surface.

The page loads releases from ``/api/releases`` at view time, so refreshing
it never edits release history into the file.
"""

from __future__ import annotations

import os

SCAFFOLD = """'use client';

import { useEffect, useState } from 'react';

export default function ReleaseNotesPage() {
  const [releases, setReleases] = useState([]);
  const [loading, setLoading] = useState(true);

  useEffect(() => {
    fetch('/api/releases')
      .then((res) => res.json())
      .then((data) => setReleases(Array.isArray(data) ? data : []))
      .finally(() => setLoading(false));
  }, []);

  if (loading) {
    return <p>Loading release notes...</p>;
  }

  return (
    <main>
      <h1>Release Notes</h1>
      {releases.map((release) => (
        <article key={release.version}>
          <h2>Version {release.version}</h2>
          <p>{release.releaseType} - {release.date}</p>
          <pre>{release.notes}</pre>
        </article>
      ))}
    </main>
  );
}
"""


def refresh_release_page(path: str) -> bool:
    """Rewrite the page scaffold. Returns True when the file changed."""
    current = None
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            current = f.read()
    content = current if current is not None else SCAFFOLD
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    tmp = path + ".tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        f.write(content)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, path)
    return current != content
