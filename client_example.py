"""
Example client for testing the Purine Vision API.
"""

import json
import mimetypes
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import requests


class PurineVisionClient:
    """Client for interacting with the Purine Vision API."""

    def __init__(self, base_url: str = "http://localhost:8000", timeout: float = 60.0):
        """
        Initialize the client.

        Args:
            base_url: Base URL of the API
            timeout: Seconds to wait for each request
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def _image_field(self, image_path: str):
        path = Path(image_path)
        content_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
        return {"image": (path.name, path.read_bytes(), content_type)}

    def health_check(self) -> Dict[str, Any]:
        """Check API health status."""
        response = self.session.get(f"{self.base_url}/health", timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def environment_check(self) -> Dict[str, Any]:
        """Check which model settings the server has."""
        response = self.session.get(f"{self.base_url}/api/test", timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def analyze(self, image_path: str) -> Dict[str, Any]:
        """
        Analyze the foods in a photo.

        The server answers business failures such as "no food detected" with
        ``success: false`` in the body, so the body is returned for any
        status that carries one.

        Args:
            image_path: Path to the image file

        Returns:
            The ``ApiResponse`` body
        """
        response = self.session.post(
            f"{self.base_url}/api/analyze",
            files=self._image_field(image_path),
            timeout=self.timeout,
        )
        if response.headers.get("content-type", "").startswith("application/json"):
            return response.json()
        response.raise_for_status()
        return {}

    def annotate(
        self,
        image_path: str,
        output_path: str,
        result: Optional[Dict[str, Any]] = None,
        max_width: Optional[int] = None,
        max_height: Optional[int] = None,
    ) -> Dict[str, str]:
        """
        Save an annotated copy of a photo.

        Args:
            image_path: Path to the image file
            output_path: Where to write the annotated PNG
            result: Analysis result to draw; the server analyzes when omitted
            max_width: Optional display width limit
            max_height: Optional display height limit

        Returns:
            The box count headers from the response
        """
        data = {"result": json.dumps(result)} if result is not None else None
        params = {
            key: value
            for key, value in (("max_width", max_width), ("max_height", max_height))
            if value is not None
        }
        response = self.session.post(
            f"{self.base_url}/api/annotate",
            files=self._image_field(image_path),
            data=data,
            params=params,
            timeout=self.timeout,
        )
        response.raise_for_status()
        if response.headers.get("content-type") != "image/png":
            raise RuntimeError(f"No annotation produced: {response.json()}")

        Path(output_path).write_bytes(response.content)
        return {
            name: response.headers[name]
            for name in ("X-Foods-Detected", "X-Boxes-Drawn", "X-Boxes-Skipped")
        }


def main():
    """Example usage of the client."""
    client = PurineVisionClient()

    try:
        print("=== Health Check ===")
        print(json.dumps(client.health_check(), indent=2))

        print("\n=== Environment ===")
        print(json.dumps(client.environment_check(), indent=2))

        if len(sys.argv) > 1:
            image_path = sys.argv[1]

            print("\n=== Analysis ===")
            analysis = client.analyze(image_path)
            print(json.dumps(analysis, indent=2, ensure_ascii=False))

            if analysis.get("success"):
                print("\n=== Annotation ===")
                output_path = str(Path(image_path).with_suffix(".annotated.png"))
                counts = client.annotate(image_path, output_path, analysis["data"])
                print(f"Saved {output_path}: {counts}")

    except requests.exceptions.ConnectionError:
        print(
            "Error: Could not connect to the API. Make sure it's running at http://localhost:8000"
        )
    except requests.exceptions.HTTPError as e:
        print(f"HTTP Error: {e}")
        print(f"Response: {e.response.text}")


if __name__ == "__main__":
    main()
