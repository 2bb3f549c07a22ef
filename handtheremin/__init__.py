"""
A theremin played with your hands, in front of a camera.

Horizontal hand position controls pitch, and closeness to the camera controls
loudness. Each hand in view plays its own sine voice.

Here's how the pieces fit, per video frame:

* ``tracker.HandTracker``: finds the hands in the frame (21 landmarks each), with
    MediaPipe.
* ``hand_features``: turns each hand's landmarks into normalized ``(x, y, z)``
    signals, and gives hands ids that persist across frames.
* ``mapping``: maps ``x`` to a frequency (logarithmically, 200 to 2000 Hz) and
    ``z`` to a volume (linearly, capped at 0.4 so several voices can be summed).
* ``frames.ThereminFrameProcessor``: compares the hands of this frame with those
    of the previous one, and drives the voices accordingly.
* ``voices.VoiceManager``: creates a voice when a hand appears, ramps its
    frequency and gain smoothly as the hand moves, and fades it out, then
    releases it, when the hand disappears.
* ``pyo_audio.PyoBackend``: the pyo server and sine generators the voices play through.
* ``display``: draws the hands and their readings on the mirrored frame.

Run it with ``python bin/theremin_cli.py`` (or the ``handtheremin`` command).
A MediaPipe ``hand_landmarker.task`` model is needed: put it in
``handtheremin/data/`` or point to it with ``--model-path``.
"""

