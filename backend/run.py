from mathduel import create_app, socketio
from mathduel.services.challenges.scheduler import schedule_daily_challenge

app = create_app()
 
if __name__ == '__main__':
    schedule_daily_challenge(app)
    # Use SocketIO server to enable websockets in dev
    socketio.run(app, debug=True)
