import numpy as np

from tutor_assessment.models.fluency_model import AudioQuality

BYTES_PER_SAMPLE = 2


def audio_duration(audio: bytes, sample_rate: int) -> float:
    """Duration in seconds of a 16-bit mono PCM buffer"""
    if not audio:
        return 0.0
    return len(audio) / float(sample_rate * BYTES_PER_SAMPLE)


def pcm_samples(audio: bytes) -> np.ndarray:
    usable = len(audio) - (len(audio) % BYTES_PER_SAMPLE)
    return np.frombuffer(audio[:usable], dtype="<i2").astype(np.float64)


def assess_audio_quality(audio: bytes) -> AudioQuality:
    """Rough volume/clarity/noise estimate from PCM amplitude"""
    samples = pcm_samples(audio)
    if samples.size == 0:
        return AudioQuality(
            clarity=0.0,
            volume=0.0,
            background_noise=1.0,
            recommendations=["No audio signal detected"],
        )

    average_amplitude = float(np.mean(np.abs(samples)))
    volume = min(1.0, average_amplitude / 32767.0)
    clarity = min(1.0, volume * 2) if volume > 0.1 else 0.2
    background_noise = 0.8 if volume < 0.05 else max(0.1, 1 - volume)

    recommendations = []
    if volume < 0.1:
        recommendations.append("Speak louder or move closer to the microphone")
    if volume > 0.9:
        recommendations.append("Move slightly away from the microphone to avoid distortion")
    if background_noise > 0.5:
        recommendations.append("Reduce background noise")
    if clarity < 0.5:
        recommendations.append("Improve microphone quality")

    return AudioQuality(
        clarity=clarity,
        volume=volume,
        background_noise=background_noise,
        recommendations=recommendations,
    )
