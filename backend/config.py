import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///simon.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Pause between a completed round and the next reveal (ms), same for every difficulty
    INTER_ROUND_DELAY_MS = int(os.environ.get('INTER_ROUND_DELAY_MS', '1000'))
    # 'socketio' runs timers as background tasks; 'manual' uses a virtual clock
    GAME_SCHEDULER = os.environ.get('GAME_SCHEDULER', 'socketio')
    # Rows returned by the leaderboard
    LEADERBOARD_LIMIT = int(os.environ.get('LEADERBOARD_LIMIT', '20'))
