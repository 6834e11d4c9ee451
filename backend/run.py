from dicestats import create_app, socketio

app = create_app()

if __name__ == '__main__':
    # Use SocketIO server so /ws stats pushes work in dev
    socketio.run(app, debug=True)
