"""Customer domain"""
