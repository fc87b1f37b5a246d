"""EduResources: an admin-managed catalog of study materials backed by Supabase."""
