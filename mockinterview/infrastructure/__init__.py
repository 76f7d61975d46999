"""Infrastructure components for the mock interview.

Concrete adapters behind the collaborator interfaces of the interview
package: microphone capture, WebM recording and Google Cloud speech.
PyAudio and the Google clients are only imported when an adapter is used.
"""
