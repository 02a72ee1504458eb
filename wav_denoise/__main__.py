from wav_denoise.main import run

run()
